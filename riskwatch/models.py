"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class AlertType(str, Enum):
    PRICE_VOLATILITY = "price_volatility"
    CONCENTRATION_RISK = "concentration_risk"
    LIQUIDITY_DROP = "liquidity_drop"
    SECURITY_THREAT = "security_threat"
    MARKET_CRASH = "market_crash"
    # Holding-level alerts: changes since the previous snapshot and per-token hints.
    PRICE_MOVE = "price_move"
    POSITION_CHANGE = "position_change"
    RISKY_TOKENS = "risky_tokens"
    STAKING_OPPORTUNITY = "staking_opportunity"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)


@dataclass(frozen=True)
class Token:
    """A single holding within one portfolio snapshot."""

    symbol: str
    name: str
    balance: float
    price: float
    value: float
    change_24h: float = 0.0
    risk_score: int = 50
    contract_address: str = ""
    is_native: bool = False
    chain: str = ""
    decimals: int = 0

    @property
    def key(self) -> tuple[str, str]:
        """Identity used when merging the same token across chains."""
        return (self.contract_address, self.symbol)


@dataclass(frozen=True)
class Portfolio:
    """Tokens held by one address, rebuilt on every refresh."""

    address: str
    tokens: tuple[Token, ...] = ()
    total_value: float = 0.0
    change_24h: float = 0.0
    change_24h_percent: float = 0.0
    last_updated: str = ""
    chain: str = ""


@dataclass(frozen=True)
class RiskMetrics:
    """Portfolio-level scores, each an integer in [0, 100]."""

    portfolio_risk_score: int
    volatility_index: int
    liquidity_score: int
    concentration_risk: int
    security_score: int
    last_updated: str


@dataclass(frozen=True)
class RiskAlert:
    """Alert emitted by one rule during one evaluation pass."""

    id: str
    type: AlertType
    severity: Severity
    title: str
    message: str
    recommendation: str
    timestamp: str
    is_read: bool = False
    token_symbol: str | None = None
    current_value: float | None = None
    threshold_value: float | None = None


@dataclass(frozen=True)
class RiskSnapshot:
    """The (alerts, metrics) pair published after every evaluation."""

    alerts: tuple[RiskAlert, ...] = ()
    metrics: RiskMetrics | None = None


@dataclass(frozen=True)
class SupportResource:
    title: str
    description: str
    url: str


@dataclass(frozen=True)
class RiskFactors:
    liquidity: int
    volatility: int
    market_cap: int
    age: int
    contract: int


@dataclass(frozen=True)
class TokenRiskAnalysis:
    score: int
    factors: RiskFactors
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class PortfolioAnalytics:
    total_value: float
    change_24h: float
    best_performer: Token | None
    worst_performer: Token | None
    risk_score: int
    diversification: int
    top_holdings: tuple[Token, ...] = ()


@dataclass(frozen=True)
class DeFiOpportunity:
    id: str
    name: str
    apy: float
    asset: str
    risk: str
    protocol: str
    min_amount: float
    lock_period: str
    description: str
    is_available: bool = True
