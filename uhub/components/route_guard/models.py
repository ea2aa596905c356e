"""
Route guard component - Data models.

State machine:
- checking -> authorized | denied
- denied -> redirecting (at most once per denial)
- any state -> checking (new navigation or principal change)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class GuardState(StrEnum):
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    REDIRECTING = "redirecting"


@dataclass(frozen=True)
class Transition:
    generation: int
    from_state: GuardState
    to_state: GuardState


# --- Input Models ---


@dataclass(frozen=True)
class CheckRouteInput:
    target: str
    role: str | None


# --- Output Models ---


@dataclass(frozen=True)
class GuardDecision:
    target: str
    role: str | None
    allowed: bool
    reason: str
    redirect_to: str | None = None
