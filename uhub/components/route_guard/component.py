"""
Route guard component - Shell layer.
"""

from __future__ import annotations

from uhub.domain.policy import AccessResolver

from ._impl import evaluate
from .models import CheckRouteInput, GuardDecision


def run_check(inp: CheckRouteInput, resolver: AccessResolver) -> GuardDecision:
    """One-shot decision without the async state machine."""
    return evaluate(resolver, inp.role, inp.target)
