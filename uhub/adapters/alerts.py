"""
Logging alert sink.

Writes operational alerts to the ``uhub.ops.alerts`` logger at CRITICAL
and keeps them in memory so operators (and tests) can list what fired
since startup. Production deployments route that logger to paging.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

ALERT_LOGGER_NAME = "uhub.ops.alerts"

logger = logging.getLogger(ALERT_LOGGER_NAME)


@dataclass(frozen=True)
class RaisedAlert:
    event: str
    details: dict[str, Any]
    raised_at: datetime


@dataclass
class LoggingAlertSink:
    raised: list[RaisedAlert] = field(default_factory=list)
    max_kept: int = 500

    def raise_alert(self, event: str, details: Mapping[str, Any]) -> None:
        record = RaisedAlert(event=event, details=dict(details), raised_at=datetime.now(UTC))
        self.raised.append(record)
        if len(self.raised) > self.max_kept:
            del self.raised[: len(self.raised) - self.max_kept]

        logger.critical("ALERT %s %s", event, record.details)

    def clear(self) -> None:
        self.raised.clear()
