"""Command-line interface for the portfolio risk monitor."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import AppConfig, load_config
from .interfaces.notifier import Notifier
from .logging_setup import configure_logging
from .models import RiskAlert, RiskMetrics
from .notifications import EmailNotifier, TelegramNotifier
from .portfolio import portfolio_from_config
from .reference import find_defi_opportunities, get_risk_prevention_tips
from .risk import analyze_token_risk, portfolio_analytics, risk_distribution
from .services import LiveRiskMonitor
from .services.formatting import format_metrics, format_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="riskwatch",
        description="Crypto portfolio risk scoring and live alerts",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: ./config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("check", help="Evaluate the portfolio once and send alerts")
    sub.add_parser("report", help="Print and send a full risk report")

    monitor_parser = sub.add_parser("monitor", help="Continuous risk monitoring")
    monitor_parser.add_argument(
        "interval",
        nargs="?",
        type=float,
        default=None,
        help="Evaluation interval in seconds (overrides config)",
    )

    return parser


def build_notifiers(config: AppConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if config.notifications.telegram.enabled:
        notifiers.append(TelegramNotifier(config.notifications.telegram))
    if config.notifications.email.enabled:
        notifiers.append(EmailNotifier(config.notifications.email))
    return notifiers


def _log_snapshot(alerts: list[RiskAlert], metrics: RiskMetrics | None) -> None:
    if metrics is None:
        return
    logger.info(
        "Risk %d · volatility %d · liquidity %d · concentration %d · security %d · %d alert(s)",
        metrics.portfolio_risk_score,
        metrics.volatility_index,
        metrics.liquidity_score,
        metrics.concentration_risk,
        metrics.security_score,
        len(alerts),
    )
    for alert in alerts:
        logger.warning("[%s] %s: %s", alert.severity.value, alert.title, alert.message)


async def _check(config: AppConfig, monitor: LiveRiskMonitor) -> None:
    portfolio = portfolio_from_config(config.portfolio)
    snapshot = await monitor.check(portfolio)
    await monitor.send_log(format_metrics(snapshot.metrics, portfolio))


async def _report(config: AppConfig, monitor: LiveRiskMonitor) -> None:
    portfolio = portfolio_from_config(config.portfolio)
    snapshot = monitor.evaluate(portfolio)

    report = format_report(
        portfolio,
        snapshot.metrics,
        snapshot.alerts,
        portfolio_analytics(portfolio),
        risk_distribution(portfolio.tokens),
        {t.symbol: analyze_token_risk(t) for t in portfolio.tokens},
        find_defi_opportunities(portfolio),
        get_risk_prevention_tips(),
    )
    print(report)
    await monitor.send_report(report, subject="📋 Portfolio Risk Report")
    logger.info("Risk report sent")


async def _monitor(
    config: AppConfig, monitor: LiveRiskMonitor, interval: float | None
) -> None:
    portfolio = portfolio_from_config(config.portfolio)
    monitor.start_monitoring(portfolio, interval)
    try:
        await asyncio.Event().wait()
    finally:
        await monitor.aclose()


async def _run(args: argparse.Namespace, config: AppConfig) -> None:
    """Execute the selected command."""
    monitor = LiveRiskMonitor(config.monitor, notifiers=build_notifiers(config))
    monitor.subscribe(_log_snapshot)

    if args.command == "check":
        await _check(config, monitor)
    elif args.command == "report":
        await _report(config, monitor)
    elif args.command == "monitor":
        await _monitor(config, monitor, args.interval)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        sys.exit(2)

    try:
        asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
