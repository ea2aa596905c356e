"""
Provisioning component ports.

The identity store and the profile store are separate services that fail
independently; the provisioner only ever talks to them through these.
"""

from uhub.ports.alerts import AlertPort
from uhub.ports.clock import ClockPort
from uhub.ports.stores import IdentityStorePort, ProfileStorePort

__all__ = ["AlertPort", "ClockPort", "IdentityStorePort", "ProfileStorePort"]
