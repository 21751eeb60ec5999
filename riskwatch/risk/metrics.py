"""Portfolio-level risk metrics.

Every function here is a pure function of ``(tokens, total_value)``. An empty
token list or a non-positive total value is the degenerate "no risk" case and
yields 0; nothing divides by zero or lets NaN escape.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Sequence

from ..models import Portfolio, RiskMetrics, Token

LIQUIDITY_VALUE_SCALE = 1000.0
UNSCORED_RISK_SCORE = 50


def round_half_up(x: float) -> int:
    """Round .5 away from zero for non-negative scores (0.5 -> 1, 12.5 -> 13)."""
    return int(math.floor(x + 0.5))


def _is_degenerate(tokens: Sequence[Token], total_value: float) -> bool:
    return not tokens or total_value <= 0


def _shares(tokens: Sequence[Token], total_value: float) -> list[float]:
    return [t.value / total_value for t in tokens]


def _mean_abs_change(tokens: Sequence[Token]) -> float:
    return sum(abs(t.change_24h or 0.0) for t in tokens) / len(tokens)


def weighted_risk_score(tokens: Sequence[Token], total_value: float) -> int:
    """Value-weighted mean of per-token risk scores."""
    if _is_degenerate(tokens, total_value):
        return 0
    weighted = sum(
        (t.value / total_value) * t.risk_score for t in tokens
    )
    return round_half_up(weighted)


def herfindahl_index(tokens: Sequence[Token], total_value: float) -> float:
    """Sum of squared value shares; 1/N <= HHI <= 1."""
    if _is_degenerate(tokens, total_value):
        return 0.0
    return sum(s * s for s in _shares(tokens, total_value))


def diversification_risk(tokens: Sequence[Token], total_value: float) -> float:
    """HHI scaled to [0, 100]; unrounded."""
    return min(100.0, herfindahl_index(tokens, total_value) * 100)


def concentration_risk(tokens: Sequence[Token], total_value: float) -> int:
    """HHI scaled to [0, 100] and rounded, published as its own metric."""
    return min(100, round_half_up(herfindahl_index(tokens, total_value) * 100))


def diversification_score(tokens: Sequence[Token], total_value: float) -> int:
    """Shannon entropy of value shares normalised by log2(n), as 0-100."""
    if len(tokens) <= 1 or total_value <= 0:
        return 0
    entropy = -sum(
        p * math.log2(p) for p in _shares(tokens, total_value) if p > 0
    )
    return round_half_up(entropy / math.log2(len(tokens)) * 100)


def volatility_index(tokens: Sequence[Token]) -> int:
    if not tokens:
        return 0
    return min(100, round_half_up(_mean_abs_change(tokens) * 2))


def liquidity_score(tokens: Sequence[Token]) -> int:
    """Coarse liquidity proxy: rewards large, stable positions."""
    if not tokens:
        return 0
    avg_value = sum(t.value for t in tokens) / len(tokens)
    value_score = min(100.0, (avg_value / LIQUIDITY_VALUE_SCALE) * 50)
    volatility_score = max(0.0, 50 - _mean_abs_change(tokens) * 2)
    return round_half_up((value_score + volatility_score) / 2)


def security_score(tokens: Sequence[Token]) -> int:
    """Mean per-token risk score; an unscored (0) token counts as neutral."""
    if not tokens:
        return 0
    scores = [t.risk_score or UNSCORED_RISK_SCORE for t in tokens]
    return round_half_up(sum(scores) / len(scores))


def compute_risk_metrics(
    portfolio: Portfolio, now: datetime | None = None
) -> RiskMetrics:
    """Recompute every metric for ``portfolio`` from scratch."""
    tokens = portfolio.tokens or ()
    total_value = portfolio.total_value or 0.0
    timestamp = (now or datetime.now(timezone.utc)).isoformat()

    if _is_degenerate(tokens, total_value):
        return RiskMetrics(0, 0, 0, 0, 0, last_updated=timestamp)

    return RiskMetrics(
        portfolio_risk_score=weighted_risk_score(tokens, total_value),
        volatility_index=volatility_index(tokens),
        liquidity_score=liquidity_score(tokens),
        concentration_risk=concentration_risk(tokens, total_value),
        security_score=security_score(tokens),
        last_updated=timestamp,
    )
