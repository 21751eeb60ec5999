"""Plain-text renderings of alerts, metrics and the full risk report."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from ..models import (
    DeFiOpportunity,
    Portfolio,
    PortfolioAnalytics,
    RiskAlert,
    RiskMetrics,
    Severity,
    Token,
    TokenRiskAnalysis,
)

_SEVERITY_ICON = {
    Severity.LOW: "ℹ️",
    Severity.MEDIUM: "⚠️",
    Severity.HIGH: "🔶",
    Severity.CRITICAL: "🚨",
}


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_address(address: str) -> str:
    if len(address) > 16:
        return f"{address[:10]}...{address[-6:]}"
    return address


def alert_subject(alert: RiskAlert) -> str:
    return f"{_SEVERITY_ICON[alert.severity]} {alert.severity.value.upper()}: {alert.title}"


def format_alert(alert: RiskAlert, address: str = "") -> str:
    lines = [
        f"{_SEVERITY_ICON[alert.severity]} {alert.severity.value.upper()} — {alert.title}",
        "",
        alert.message,
    ]
    if alert.token_symbol:
        lines.append(f"Token: {alert.token_symbol}")
    if alert.current_value is not None and alert.threshold_value is not None:
        lines.append(
            f"Value: {alert.current_value:.1f} (threshold {alert.threshold_value:g})"
        )
    lines += ["", alert.recommendation]
    if address:
        lines += ["", f"Wallet: {format_address(address)}"]
    lines.append(f"{_now_str()} UTC")
    return "\n".join(lines)


def format_metrics(metrics: RiskMetrics | None, portfolio: Portfolio | None = None) -> str:
    if metrics is None:
        return "No risk assessment yet."
    header = "📊 Portfolio risk"
    if portfolio is not None:
        header += (
            f" · {format_address(portfolio.address)}"
            f" · ${portfolio.total_value:,.2f}"
        )
    return (
        f"{header}\n"
        f"\n"
        f"Risk score: {metrics.portfolio_risk_score}/100\n"
        f"Volatility: {metrics.volatility_index}/100\n"
        f"Liquidity: {metrics.liquidity_score}/100\n"
        f"Concentration: {metrics.concentration_risk}/100\n"
        f"Security: {metrics.security_score}/100\n"
        f"\n"
        f"{metrics.last_updated}"
    )


def _token_line(token: Token) -> str:
    return (
        f"  {token.symbol:<8} ${token.value:>14,.2f}  "
        f"{token.change_24h:+7.2f}%  risk {token.risk_score}"
    )


def format_report(
    portfolio: Portfolio,
    metrics: RiskMetrics,
    alerts: Sequence[RiskAlert],
    analytics: PortfolioAnalytics,
    distribution: dict[str, float],
    token_analyses: dict[str, TokenRiskAnalysis],
    opportunities: Sequence[DeFiOpportunity],
    tips: Sequence[str],
) -> str:
    """Full risk report, grouped into sections."""
    sections: list[str] = [format_metrics(metrics, portfolio)]

    summary = [
        "━━ Analytics ━━",
        f"24h change: ${analytics.change_24h:,.2f} ({portfolio.change_24h_percent:+.2f}%)",
        f"Overall risk: {analytics.risk_score}/100",
        f"Diversification: {analytics.diversification}/100",
    ]
    if analytics.best_performer is not None:
        summary.append(
            f"Best: {analytics.best_performer.symbol} "
            f"({analytics.best_performer.change_24h:+.2f}%)"
        )
    if analytics.worst_performer is not None:
        summary.append(
            f"Worst: {analytics.worst_performer.symbol} "
            f"({analytics.worst_performer.change_24h:+.2f}%)"
        )
    sections.append("\n".join(summary))

    if analytics.top_holdings:
        sections.append(
            "\n".join(["━━ Top holdings ━━"] + [_token_line(t) for t in analytics.top_holdings])
        )

    if distribution:
        sections.append(
            "\n".join(
                ["━━ Risk distribution ━━"]
                + [f"  {band}: ${value:,.2f}" for band, value in distribution.items()]
            )
        )

    if token_analyses:
        lines = ["━━ Token analysis ━━"]
        for symbol, analysis in token_analyses.items():
            lines.append(f"  {symbol}: {analysis.score}/100")
            lines += [f"    - {rec}" for rec in analysis.recommendations]
        sections.append("\n".join(lines))

    if alerts:
        lines = ["━━ Alerts ━━"]
        for alert in alerts:
            lines.append(
                f"  {_SEVERITY_ICON[alert.severity]} [{alert.severity.value}] "
                f"{alert.title}: {alert.message}"
            )
        sections.append("\n".join(lines))
    else:
        sections.append("No active alerts.")

    if opportunities:
        sections.append(
            "\n".join(
                ["━━ Yield opportunities ━━"]
                + [
                    f"  {o.name} ({o.asset}) {o.apy:.1f}% APY · {o.risk} risk"
                    for o in opportunities
                ]
            )
        )

    if tips:
        sections.append("\n".join(["━━ Tips ━━"] + [f"  • {tip}" for tip in tips]))

    return (
        "📋 Portfolio Risk Report\n\n"
        + "\n\n".join(sections)
        + f"\n\n{_now_str()} UTC"
    )
