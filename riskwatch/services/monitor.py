"""Live risk monitoring — periodic re-evaluation and subscriber fan-out."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Iterable

from ..config import MonitorConfig
from ..interfaces.notifier import Notifier
from ..interfaces.subscriber import RiskSubscriber
from ..models import (
    AlertType,
    Portfolio,
    RiskAlert,
    RiskMetrics,
    RiskSnapshot,
    SupportResource,
)
from ..reference import get_risk_prevention_tips, get_risk_support_resources
from ..risk.alerts import AlertEngine
from ..risk.metrics import compute_risk_metrics
from .formatting import alert_subject, format_alert

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Runs ``callback`` every ``interval`` seconds until cancelled.

    Must be created while an event loop is running. After ``cancel()``
    returns the callback is never invoked again.
    """

    def __init__(self, callback: Callable[[], None], interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._callback = callback
        self._interval = interval
        self._cancelled = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return not self._cancelled and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if self._cancelled:
                return
            try:
                self._callback()
            except Exception:
                logger.exception("Scheduled callback failed")

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._task.cancel()


class LiveRiskMonitor:
    """Owns the current (alerts, metrics) snapshot and publishes updates.

    Construct one per application and hand it to whatever needs risk data.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        engine: AlertEngine | None = None,
        notifiers: Iterable[Notifier] = (),
    ) -> None:
        self._config = config or MonitorConfig()
        self._engine = engine or AlertEngine(self._config.thresholds)
        self._notifiers: list[Notifier] = list(notifiers)

        self._alerts: tuple[RiskAlert, ...] = ()
        self._metrics: RiskMetrics | None = None
        self._subscribers: list[RiskSubscriber] = []

        self._portfolio: Portfolio | None = None
        # last successfully evaluated portfolio; baseline for change rules
        self._previous: Portfolio | None = None
        # (type, token) -> (monotonic time, severity rank) of the last delivery
        self._last_sent: dict[tuple[AlertType, str | None], tuple[float, int]] = {}
        self._clock: Callable[[], float] = time.monotonic
        self._schedule: ScheduledTask | None = None
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_monitoring(self) -> bool:
        return self._schedule is not None and self._schedule.running

    def start_monitoring(
        self, portfolio: Portfolio, interval: float | None = None
    ) -> None:
        """Evaluate now, then every ``interval`` seconds until stopped."""
        if interval is None:
            interval = self._config.interval_seconds
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        asyncio.get_running_loop()  # raises outside an event loop
        self.stop_monitoring()

        self._portfolio = portfolio
        self._tick()
        self._schedule = ScheduledTask(self._tick, interval)
        logger.info(
            "Started risk monitoring for %s (every %.1fs)", portfolio.address, interval
        )

    def stop_monitoring(self) -> None:
        if self._schedule is None:
            return
        self._schedule.cancel()
        self._schedule = None
        logger.info("Stopped risk monitoring")

    def update_portfolio(self, portfolio: Portfolio) -> None:
        """Use ``portfolio`` from the next scheduled evaluation on."""
        self._portfolio = portfolio

    async def aclose(self) -> None:
        """Stop monitoring and wait for in-flight notifications."""
        self.stop_monitoring()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, portfolio: Portfolio) -> RiskSnapshot:
        """Run metrics and rules once, replace the snapshot, notify subscribers."""
        try:
            metrics = compute_risk_metrics(portfolio)
            alerts = self._engine.evaluate(
                portfolio, metrics, previous=self._baseline_for(portfolio)
            )
        except Exception:
            logger.exception("Error assessing portfolio risk")
            return self.snapshot()

        self._metrics = metrics
        self._alerts = tuple(alerts)
        self._previous = portfolio
        logger.debug(
            "Risk %d · volatility %d · liquidity %d · concentration %d · security %d",
            metrics.portfolio_risk_score,
            metrics.volatility_index,
            metrics.liquidity_score,
            metrics.concentration_risk,
            metrics.security_score,
        )
        self._notify_subscribers()
        return self.snapshot()

    async def check(self, portfolio: Portfolio) -> RiskSnapshot:
        """Evaluate once and deliver qualifying alerts before returning."""
        snapshot = self.evaluate(portfolio)
        await self.dispatch_alerts(snapshot.alerts, portfolio.address)
        return snapshot

    def _baseline_for(self, portfolio: Portfolio) -> Portfolio | None:
        previous = self._previous
        if previous is None or previous.address != portfolio.address:
            return None
        return previous

    def _tick(self) -> None:
        if self._portfolio is None:
            return
        snapshot = self.evaluate(self._portfolio)
        if self._notifiers and snapshot.alerts:
            task = asyncio.get_running_loop().create_task(
                self.dispatch_alerts(snapshot.alerts, self._portfolio.address)
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    def snapshot(self) -> RiskSnapshot:
        return RiskSnapshot(alerts=self._alerts, metrics=self._metrics)

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def dispatch_alerts(
        self, alerts: Iterable[RiskAlert], address: str = ""
    ) -> int:
        """Send alerts at or above the configured severity; return how many went out.

        An alert whose type and token were delivered within the cooldown
        window is held back unless its severity is higher than last time.
        """
        floor = self._config.notify_min_severity.rank
        sent = 0
        for alert in alerts:
            if alert.severity.rank < floor or self._cooling_down(alert):
                continue
            message = format_alert(alert, address)
            subject = alert_subject(alert)
            delivered = False
            for notifier in self._notifiers:
                try:
                    if await notifier.send_alert(message, subject=subject):
                        sent += 1
                        delivered = True
                except Exception as e:
                    logger.error("Notifier send_alert failed: %s", e)
            if delivered:
                self._last_sent[(alert.type, alert.token_symbol)] = (
                    self._clock(),
                    alert.severity.rank,
                )
        return sent

    def _cooling_down(self, alert: RiskAlert) -> bool:
        last = self._last_sent.get((alert.type, alert.token_symbol))
        if last is None:
            return False
        sent_at, rank = last
        if alert.severity.rank > rank:
            return False
        if self._clock() - sent_at >= self._config.notify_cooldown_seconds:
            return False
        logger.debug("Holding back %s alert during cooldown", alert.type.value)
        return True

    async def send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def send_report(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: RiskSubscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def _notify_subscribers(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(list(self._alerts), self._metrics)
            except Exception:
                logger.exception("Risk subscriber raised")

    # ------------------------------------------------------------------
    # Read access and read-state
    # ------------------------------------------------------------------

    def get_risk_alerts(self) -> list[RiskAlert]:
        return list(self._alerts)

    def get_risk_metrics(self) -> RiskMetrics | None:
        return self._metrics

    def get_unread_count(self) -> int:
        return sum(1 for a in self._alerts if not a.is_read)

    def mark_alert_as_read(self, alert_id: str) -> bool:
        """Flag one alert as read; unknown ids are ignored."""
        for i, alert in enumerate(self._alerts):
            if alert.id == alert_id:
                if not alert.is_read:
                    alerts = list(self._alerts)
                    alerts[i] = replace(alert, is_read=True)
                    self._alerts = tuple(alerts)
                self._notify_subscribers()
                return True
        return False

    def mark_all_alerts_as_read(self) -> None:
        self._alerts = tuple(
            a if a.is_read else replace(a, is_read=True) for a in self._alerts
        )
        self._notify_subscribers()

    # ------------------------------------------------------------------
    # Static reference data
    # ------------------------------------------------------------------

    @staticmethod
    def get_risk_prevention_tips() -> list[str]:
        return get_risk_prevention_tips()

    @staticmethod
    def get_risk_support_resources() -> list[SupportResource]:
        return get_risk_support_resources()
