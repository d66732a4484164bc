"""Breach verdicts against a policy's targets."""

from __future__ import annotations

from slaclock.models import BreachReason, SlaPolicy, Verdict


def evaluate(
    first_response_minutes: int | None,
    resolution_minutes: int | None,
    policy: SlaPolicy,
) -> Verdict:
    """Compare accumulated minutes with the policy targets.

    Only strictly exceeding a target is a breach. When both targets are
    exceeded the resolution reason is reported.
    """
    breached_first = (
        policy.target_first_response_minutes is not None
        and first_response_minutes is not None
        and first_response_minutes > policy.target_first_response_minutes
    )
    breached_resolution = (
        resolution_minutes is not None
        and resolution_minutes > policy.target_resolution_minutes
    )

    if breached_resolution:
        return Verdict(breached=True, reason=BreachReason.RESOLUTION_EXCEEDED)
    if breached_first:
        return Verdict(breached=True, reason=BreachReason.FIRST_RESPONSE_EXCEEDED)
    return Verdict(breached=False)
