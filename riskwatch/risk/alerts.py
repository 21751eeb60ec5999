"""Threshold-based alert rules evaluated against a portfolio and its metrics."""
from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Union

from ..config import AlertThresholds
from ..models import AlertType, Portfolio, RiskAlert, RiskMetrics, Severity, Token

logger = logging.getLogger(__name__)

RuleResult = Union[RiskAlert, Iterable[RiskAlert], None]
Rule = Callable[["_RuleContext"], RuleResult]

_ID_PREFIX = {
    AlertType.PRICE_VOLATILITY: "volatility",
    AlertType.CONCENTRATION_RISK: "concentration",
    AlertType.LIQUIDITY_DROP: "liquidity",
    AlertType.SECURITY_THREAT: "security",
    AlertType.MARKET_CRASH: "market-crash",
    AlertType.PRICE_MOVE: "price",
    AlertType.POSITION_CHANGE: "position",
    AlertType.RISKY_TOKENS: "risky-tokens",
    AlertType.STAKING_OPPORTUNITY: "staking",
}


def new_alert_id(alert_type: AlertType) -> str:
    return f"{_ID_PREFIX[alert_type]}-{uuid.uuid4().hex}"


class _RuleContext:
    """Inputs shared by every rule within one evaluation pass."""

    def __init__(
        self,
        portfolio: Portfolio,
        metrics: RiskMetrics,
        thresholds: AlertThresholds,
        rng: random.Random,
        timestamp: str,
        previous: Portfolio | None = None,
    ) -> None:
        self.portfolio = portfolio
        self.tokens = portfolio.tokens or ()
        self.total_value = portfolio.total_value or 0.0
        self.metrics = metrics
        self.thresholds = thresholds
        self.rng = rng
        self.timestamp = timestamp
        self.previous = previous

    @property
    def has_data(self) -> bool:
        return bool(self.tokens) and self.total_value > 0

    def matched_holdings(self) -> list[tuple[Token, Token]]:
        """(previous, current) pairs for holdings present in both snapshots."""
        if self.previous is None:
            return []
        before = {t.key: t for t in self.previous.tokens or ()}
        return [(before[t.key], t) for t in self.tokens if t.key in before]

    def alert(
        self,
        alert_type: AlertType,
        severity: Severity,
        title: str,
        message: str,
        recommendation: str,
        **extra,
    ) -> RiskAlert:
        return RiskAlert(
            id=new_alert_id(alert_type),
            type=alert_type,
            severity=severity,
            title=title,
            message=message,
            recommendation=recommendation,
            timestamp=self.timestamp,
            **extra,
        )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def price_volatility_rule(ctx: _RuleContext) -> RiskAlert | None:
    if not ctx.has_data:
        return None

    limit = ctx.thresholds.price_volatility_pct
    movers = [t for t in ctx.tokens if abs(t.change_24h or 0.0) > limit]
    if not movers:
        return None

    count = len(movers)
    severity = (
        Severity.HIGH if count > ctx.thresholds.volatility_high_count else Severity.MEDIUM
    )
    return ctx.alert(
        AlertType.PRICE_VOLATILITY,
        severity,
        title="High Price Volatility Detected",
        message=f"{count} token(s) showing >{limit:g}% price movement in 24h",
        recommendation="Consider reducing position sizes or setting stop-loss orders",
        token_symbol=movers[0].symbol,
        current_value=float(count),
        threshold_value=limit,
    )


def concentration_risk_rule(ctx: _RuleContext) -> RiskAlert | None:
    if not ctx.has_data:
        return None

    t = ctx.thresholds
    risk = ctx.metrics.concentration_risk
    if not risk > t.concentration_warning:
        return None

    top = max(ctx.tokens, key=lambda tok: tok.value)
    share = top.value / ctx.total_value * 100
    return ctx.alert(
        AlertType.CONCENTRATION_RISK,
        Severity.HIGH if risk > t.concentration_high else Severity.MEDIUM,
        title="High Portfolio Concentration",
        message=f"Portfolio is {share:.1f}% concentrated in {top.symbol}",
        recommendation=(
            "Consider diversifying across more assets to reduce concentration risk"
        ),
        token_symbol=top.symbol,
        current_value=share,
        threshold_value=t.concentration_warning,
    )


def liquidity_drop_rule(ctx: _RuleContext) -> RiskAlert | None:
    if not ctx.has_data:
        return None

    t = ctx.thresholds
    score = ctx.metrics.liquidity_score
    if not score < t.liquidity_warning:
        return None

    return ctx.alert(
        AlertType.LIQUIDITY_DROP,
        Severity.HIGH if score < t.liquidity_high else Severity.MEDIUM,
        title="Low Liquidity Detected",
        message="Portfolio shows signs of low liquidity",
        recommendation=(
            "Consider holding more liquid assets or reducing position sizes"
        ),
        current_value=float(score),
        threshold_value=t.liquidity_warning,
    )


def security_threat_rule(ctx: _RuleContext) -> RiskAlert | None:
    if not ctx.has_data:
        return None

    t = ctx.thresholds
    score = ctx.metrics.security_score
    if not score < t.security_warning:
        return None

    return ctx.alert(
        AlertType.SECURITY_THREAT,
        Severity.CRITICAL if score < t.security_critical else Severity.HIGH,
        title="Security Risk Detected",
        message="Portfolio contains high-risk or potentially suspicious tokens",
        recommendation=(
            "Review token contracts and consider removing high-risk positions"
        ),
        current_value=float(score),
        threshold_value=t.security_warning,
    )


def market_crash_rule(ctx: _RuleContext) -> RiskAlert | None:
    """Synthetic demo alert fired at random; only runs when enabled."""
    t = ctx.thresholds
    if not t.market_crash_enabled:
        return None
    if ctx.rng.random() >= t.market_crash_probability:
        return None

    return ctx.alert(
        AlertType.MARKET_CRASH,
        Severity.CRITICAL,
        title="Market Volatility Alert",
        message="High market volatility detected across multiple assets",
        recommendation="Consider reducing exposure or moving to stable assets",
    )


def _pct_change(before: float, after: float) -> float | None:
    if before <= 0:
        return None
    return (after - before) / before * 100


def price_move_rule(ctx: _RuleContext) -> list[RiskAlert]:
    """One alert per holding whose price moved since the previous snapshot."""
    t = ctx.thresholds
    alerts = []
    for before, token in ctx.matched_holdings():
        change = _pct_change(before.price, token.price)
        if change is None or not abs(change) > t.price_move_pct:
            continue
        direction = "increased" if change > 0 else "decreased"
        alerts.append(ctx.alert(
            AlertType.PRICE_MOVE,
            Severity.HIGH if abs(change) > t.price_move_high_pct else Severity.MEDIUM,
            title=f"{token.symbol} Price Alert",
            message=f"{token.symbol} price {direction} by {abs(change):.2f}%",
            recommendation="Review the position and any stop-loss levels",
            token_symbol=token.symbol,
            current_value=change,
            threshold_value=t.price_move_pct,
        ))
    return alerts


def position_change_rule(ctx: _RuleContext) -> list[RiskAlert]:
    """One alert per holding whose USD value changed since the previous snapshot."""
    t = ctx.thresholds
    alerts = []
    for before, token in ctx.matched_holdings():
        change = _pct_change(before.value, token.value)
        if change is None or not abs(change) > t.position_change_pct:
            continue
        direction = "increased" if change > 0 else "decreased"
        alerts.append(ctx.alert(
            AlertType.POSITION_CHANGE,
            Severity.HIGH if abs(change) > t.position_change_high_pct else Severity.MEDIUM,
            title=f"{token.symbol} Position Change",
            message=f"Your {token.symbol} position {direction} by {abs(change):.1f}%",
            recommendation="Confirm the change was expected",
            token_symbol=token.symbol,
            current_value=change,
            threshold_value=t.position_change_pct,
        ))
    return alerts


def risky_tokens_rule(ctx: _RuleContext) -> RiskAlert | None:
    t = ctx.thresholds
    if not t.holding_alerts_enabled or not ctx.has_data:
        return None

    risky = [tok for tok in ctx.tokens if tok.risk_score < t.risky_token_score]
    if not risky:
        return None

    return ctx.alert(
        AlertType.RISKY_TOKENS,
        Severity.HIGH,
        title="High Risk Tokens Detected",
        message=f"{len(risky)} token(s) in your portfolio have high risk scores",
        recommendation="Research these tokens and consider reducing exposure",
        token_symbol=risky[0].symbol,
        current_value=float(len(risky)),
        threshold_value=t.risky_token_score,
    )


STAKABLE_SYMBOLS = frozenset({"ETH", "SOL", "MATIC", "AVAX"})


def staking_opportunity_rule(ctx: _RuleContext) -> RiskAlert | None:
    t = ctx.thresholds
    if not t.holding_alerts_enabled or not ctx.has_data:
        return None

    stakable = [
        tok for tok in ctx.tokens
        if tok.symbol in STAKABLE_SYMBOLS and tok.value > t.staking_min_value
    ]
    if not stakable:
        return None

    return ctx.alert(
        AlertType.STAKING_OPPORTUNITY,
        Severity.LOW,
        title="Staking Opportunities Available",
        message=(
            f"You have {len(stakable)} token(s) that can be staked for additional yield"
        ),
        recommendation="See the yield opportunities section of the risk report",
        token_symbol=stakable[0].symbol,
    )


DEFAULT_RULES: tuple[Rule, ...] = (
    price_volatility_rule,
    concentration_risk_rule,
    liquidity_drop_rule,
    security_threat_rule,
    market_crash_rule,
    price_move_rule,
    position_change_rule,
    risky_tokens_rule,
    staking_opportunity_rule,
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AlertEngine:
    """Stateless rule runner; every call returns a fresh alert list."""

    def __init__(
        self,
        thresholds: AlertThresholds | None = None,
        rng: random.Random | None = None,
        rules: tuple[Rule, ...] = DEFAULT_RULES,
    ) -> None:
        self._thresholds = thresholds or AlertThresholds()
        self._rng = rng or random.Random()
        self._rules = rules

    @property
    def thresholds(self) -> AlertThresholds:
        return self._thresholds

    def evaluate(
        self,
        portfolio: Portfolio,
        metrics: RiskMetrics,
        now: datetime | None = None,
        previous: Portfolio | None = None,
    ) -> list[RiskAlert]:
        """Run every rule; ``previous`` enables the per-holding change rules."""
        ctx = _RuleContext(
            portfolio,
            metrics,
            self._thresholds,
            self._rng,
            (now or datetime.now(timezone.utc)).isoformat(),
            previous,
        )

        alerts: list[RiskAlert] = []
        for rule in self._rules:
            try:
                result = rule(ctx)
                if isinstance(result, RiskAlert):
                    result = [result]
                alerts.extend(result or ())
            except Exception:
                logger.exception("Alert rule %s failed", getattr(rule, "__name__", rule))

        if alerts:
            logger.debug(
                "Evaluation raised %d alert(s): %s",
                len(alerts),
                ", ".join(a.type.value for a in alerts),
            )
        return alerts
