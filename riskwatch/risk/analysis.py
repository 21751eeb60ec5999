"""Portfolio analytics and per-token risk breakdowns used by the report."""
from __future__ import annotations

from typing import Sequence

from ..models import (
    ZERO_ADDRESS,
    Portfolio,
    PortfolioAnalytics,
    RiskFactors,
    Token,
    TokenRiskAnalysis,
)
from .metrics import (
    diversification_risk,
    diversification_score,
    round_half_up,
)

# (label, lowest score, highest score), best band first.
RISK_BANDS: tuple[tuple[str, int, int], ...] = (
    ("Low Risk (80-100)", 80, 100),
    ("Medium Risk (60-79)", 60, 79),
    ("High Risk (40-59)", 40, 59),
    ("Very High Risk (0-39)", 0, 39),
)

TOP_HOLDINGS = 5


def _total(tokens: Sequence[Token]) -> float:
    return sum(t.value for t in tokens)


def _by_value(tokens: Sequence[Token]) -> list[Token]:
    return sorted(tokens, key=lambda t: t.value, reverse=True)


def top3_concentration_risk(tokens: Sequence[Token]) -> int:
    """Step score from the share held by the three largest positions."""
    total = _total(tokens)
    if not tokens or total <= 0:
        return 0

    top3_pct = _total(_by_value(tokens)[:3]) / total * 100
    if top3_pct > 80:
        return 90
    if top3_pct > 60:
        return 70
    if top3_pct > 40:
        return 50
    if top3_pct > 20:
        return 30
    return 10


def overall_risk_score(tokens: Sequence[Token]) -> int:
    """Blend of weighted token risk, HHI and top-3 concentration."""
    if not tokens:
        return 0

    total = _total(tokens)
    if total <= 0:
        weighted = 0.0
        # Nothing is spread when nothing has value.
        hhi_risk = 100.0
    else:
        weighted = sum(t.value / total * t.risk_score for t in tokens)
        hhi_risk = 100.0 if len(tokens) == 1 else diversification_risk(tokens, total)

    return round_half_up(
        weighted * 0.4 + hhi_risk * 0.3 + top3_concentration_risk(tokens) * 0.3
    )


# ---------------------------------------------------------------------------
# Per-token factors
# ---------------------------------------------------------------------------


def _liquidity_factor(token: Token) -> int:
    if token.change_24h == 0:
        return 50
    move = abs(token.change_24h)
    if move < 5:
        return 80
    if move < 15:
        return 60
    if move < 30:
        return 40
    return 20


def _volatility_factor(token: Token) -> int:
    move = abs(token.change_24h)
    if move < 2:
        return 90
    if move < 5:
        return 70
    if move < 10:
        return 50
    if move < 20:
        return 30
    return 10


def _market_cap_factor(token: Token) -> int:
    # Position size stands in for market cap.
    if token.value < 100:
        return 20
    if token.value < 1_000:
        return 40
    if token.value < 10_000:
        return 60
    if token.value < 100_000:
        return 80
    return 90


def _age_factor(token: Token) -> int:
    if token.contract_address.lower() == ZERO_ADDRESS:
        return 90
    return 60


def _contract_factor(token: Token) -> int:
    if token.is_native:
        return 90
    if token.contract_address and token.contract_address.lower() != ZERO_ADDRESS:
        return 70
    return 30


def _recommendations(factors: RiskFactors) -> tuple[str, ...]:
    recs: list[str] = []
    if factors.liquidity < 40:
        recs.append("Low liquidity detected - consider reducing position size")
    if factors.volatility < 30:
        recs.append("High volatility - monitor closely and consider stop-loss")
    if factors.market_cap < 40:
        recs.append("Small position size - consider increasing if confident in token")
    if factors.contract < 50:
        recs.append("Contract risk detected - verify token authenticity")
    if not recs:
        recs.append("Token appears to be in good standing")
    return tuple(recs)


def analyze_token_risk(token: Token) -> TokenRiskAnalysis:
    factors = RiskFactors(
        liquidity=_liquidity_factor(token),
        volatility=_volatility_factor(token),
        market_cap=_market_cap_factor(token),
        age=_age_factor(token),
        contract=_contract_factor(token),
    )
    score = round_half_up(
        (
            factors.liquidity
            + factors.volatility
            + factors.market_cap
            + factors.age
            + factors.contract
        )
        / 5
    )
    return TokenRiskAnalysis(
        score=score, factors=factors, recommendations=_recommendations(factors)
    )


# ---------------------------------------------------------------------------
# Portfolio-wide views
# ---------------------------------------------------------------------------


def portfolio_analytics(portfolio: Portfolio) -> PortfolioAnalytics:
    tokens = portfolio.tokens
    best = max(tokens, key=lambda t: t.change_24h) if tokens else None
    worst = min(tokens, key=lambda t: t.change_24h) if tokens else None

    return PortfolioAnalytics(
        total_value=portfolio.total_value or 0.0,
        change_24h=portfolio.change_24h or 0.0,
        best_performer=best,
        worst_performer=worst,
        risk_score=overall_risk_score(tokens),
        diversification=diversification_score(tokens, _total(tokens)),
        top_holdings=tuple(_by_value(tokens)[:TOP_HOLDINGS]),
    )


def risk_distribution(tokens: Sequence[Token]) -> dict[str, float]:
    """Value held in each risk band, omitting empty bands."""
    distribution: dict[str, float] = {}
    for token in tokens:
        for label, low, high in RISK_BANDS:
            if low <= token.risk_score <= high:
                distribution[label] = distribution.get(label, 0.0) + token.value
                break
    return distribution
