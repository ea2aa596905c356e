"""
Role administration component ports.

Roles live on the profile record, so the profile store is the only store
this component writes to.
"""

from uhub.ports.clock import ClockPort
from uhub.ports.stores import ProfileStorePort

__all__ = ["ClockPort", "ProfileStorePort"]
