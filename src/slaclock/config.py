"""Runtime settings, read from ``SLACLOCK_*`` environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SLACLOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    registry_path: Path = Field(
        default=Path("registry"), description="Directory with the YAML registry"
    )
    event_log_path: Path = Field(
        default=Path("./audit_logs/sla_events.jsonl"),
        description="JSONL file receiving SLA events",
    )
    events_enabled: bool = Field(default=True, description="Record SLA events")
    stats_path: Path = Field(
        default=Path("./sla_stats.json"),
        description="JSON document holding SLA stats per ticket",
    )
    workers: int = Field(default=4, ge=1, description="Batch recompute workers")
    log_level: str = Field(default="WARNING", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"unknown log level '{value}', expected one of {', '.join(LOG_LEVELS)}"
            )
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()
