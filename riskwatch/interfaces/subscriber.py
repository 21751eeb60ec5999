"""Subscriber protocol — receives every published risk snapshot."""
from __future__ import annotations

from typing import Protocol

from ..models import RiskAlert, RiskMetrics


class RiskSubscriber(Protocol):
    """Called synchronously, in registration order, after each update."""

    def __call__(
        self, alerts: list[RiskAlert], metrics: RiskMetrics | None
    ) -> None: ...
