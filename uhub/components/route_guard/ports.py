"""
Route guard component ports.
"""

from __future__ import annotations

from typing import Protocol


class RoleSourcePort(Protocol):
    async def resolve_role(self) -> str | None:
        """Role of the current principal, or None when nobody is signed in."""
        ...


class NavigatorPort(Protocol):
    def redirect(self, path: str) -> None:
        ...
