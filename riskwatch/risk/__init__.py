"""Risk scoring, analytics and alert rules."""
from .alerts import AlertEngine
from .analysis import analyze_token_risk, portfolio_analytics, risk_distribution
from .metrics import compute_risk_metrics

__all__ = [
    "AlertEngine",
    "analyze_token_risk",
    "compute_risk_metrics",
    "portfolio_analytics",
    "risk_distribution",
]
