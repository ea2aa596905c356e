from collections.abc import Mapping
from typing import Any, Protocol


class AlertPort(Protocol):
    """Operational alert path for states the system cannot repair itself."""

    def raise_alert(self, event: str, details: Mapping[str, Any]) -> None:
        ...
