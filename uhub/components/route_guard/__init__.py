"""
Route guard component - navigation gating state machine.
"""

from ._impl import RouteGuard, evaluate
from .component import run_check
from .models import CheckRouteInput, GuardDecision, GuardState, Transition
from .ports import NavigatorPort, RoleSourcePort

__all__ = [
    # Entry points
    "run_check",
    # Models
    "CheckRouteInput",
    "GuardDecision",
    "GuardState",
    "Transition",
    # Ports
    "NavigatorPort",
    "RoleSourcePort",
    # Service
    "RouteGuard",
    "evaluate",
]
