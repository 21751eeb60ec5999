"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import Severity

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlertThresholds:
    price_volatility_pct: float = 20.0
    volatility_high_count: int = 2
    concentration_warning: float = 70.0
    concentration_high: float = 85.0
    liquidity_warning: float = 30.0
    liquidity_high: float = 15.0
    security_warning: float = 40.0
    security_critical: float = 20.0
    # Synthetic demo rule; off unless explicitly enabled.
    market_crash_enabled: bool = False
    market_crash_probability: float = 0.05
    # Moves against the previous snapshot of the same holding.
    price_move_pct: float = 10.0
    price_move_high_pct: float = 20.0
    position_change_pct: float = 25.0
    position_change_high_pct: float = 50.0
    # Per-token hints; off unless explicitly enabled.
    holding_alerts_enabled: bool = False
    risky_token_score: float = 40.0
    staking_min_value: float = 100.0


@dataclass(frozen=True)
class MonitorConfig:
    interval_seconds: float = 30.0
    notify_min_severity: Severity = Severity.HIGH
    # Same alert type for the same token is not re-sent within this window.
    notify_cooldown_seconds: float = 900.0
    thresholds: AlertThresholds = field(default_factory=AlertThresholds)


@dataclass(frozen=True)
class HoldingConfig:
    """One raw balance entry, as a chain-data API would report it."""

    symbol: str = ""
    name: str = ""
    balance: str = "0"
    decimals: int = 0
    price: float = 0.0
    change_24h: float = 0.0
    contract_address: str = ""
    contract_created_at: str = ""
    value: float | None = None


@dataclass(frozen=True)
class PortfolioConfig:
    address: str = ""
    min_value: float = 0.0
    chains: dict[str, tuple[HoldingConfig, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    alert_email: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _parse_severity(raw: Any) -> Severity:
    try:
        return Severity(str(raw).lower())
    except ValueError:
        raise ValueError(f"Unknown severity '{raw}'") from None


def _build_thresholds(raw: dict[str, Any]) -> AlertThresholds:
    defaults = AlertThresholds()
    return AlertThresholds(
        price_volatility_pct=float(
            raw.get("price_volatility_pct", defaults.price_volatility_pct)
        ),
        volatility_high_count=int(
            raw.get("volatility_high_count", defaults.volatility_high_count)
        ),
        concentration_warning=float(
            raw.get("concentration_warning", defaults.concentration_warning)
        ),
        concentration_high=float(
            raw.get("concentration_high", defaults.concentration_high)
        ),
        liquidity_warning=float(
            raw.get("liquidity_warning", defaults.liquidity_warning)
        ),
        liquidity_high=float(raw.get("liquidity_high", defaults.liquidity_high)),
        security_warning=float(
            raw.get("security_warning", defaults.security_warning)
        ),
        security_critical=float(
            raw.get("security_critical", defaults.security_critical)
        ),
        market_crash_enabled=bool(raw.get("market_crash_enabled", False)),
        market_crash_probability=float(
            raw.get("market_crash_probability", defaults.market_crash_probability)
        ),
        price_move_pct=float(raw.get("price_move_pct", defaults.price_move_pct)),
        price_move_high_pct=float(
            raw.get("price_move_high_pct", defaults.price_move_high_pct)
        ),
        position_change_pct=float(
            raw.get("position_change_pct", defaults.position_change_pct)
        ),
        position_change_high_pct=float(
            raw.get("position_change_high_pct", defaults.position_change_high_pct)
        ),
        holding_alerts_enabled=bool(raw.get("holding_alerts_enabled", False)),
        risky_token_score=float(
            raw.get("risky_token_score", defaults.risky_token_score)
        ),
        staking_min_value=float(
            raw.get("staking_min_value", defaults.staking_min_value)
        ),
    )


def _build_monitor(raw: dict[str, Any], alerts_raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        interval_seconds=float(raw.get("interval_seconds", 30.0)),
        notify_min_severity=_parse_severity(raw.get("notify_min_severity", "high")),
        notify_cooldown_seconds=float(raw.get("notify_cooldown_seconds", 900.0)),
        thresholds=_build_thresholds(alerts_raw),
    )


def _build_holding(raw: dict[str, Any]) -> HoldingConfig:
    value = raw.get("value")
    return HoldingConfig(
        symbol=str(raw.get("symbol", "")),
        name=str(raw.get("name", "")),
        balance=str(raw.get("balance", "0")),
        decimals=int(raw.get("decimals", 0) or 0),
        price=float(raw.get("price", 0.0) or 0.0),
        change_24h=float(raw.get("change_24h", 0.0) or 0.0),
        contract_address=str(raw.get("contract_address") or ""),
        contract_created_at=str(raw.get("contract_created_at") or ""),
        value=float(value) if value is not None else None,
    )


def _build_portfolio(raw: dict[str, Any]) -> PortfolioConfig:
    chains: dict[str, tuple[HoldingConfig, ...]] = {}
    for chain_name, holdings in (raw.get("chains") or {}).items():
        chains[chain_name] = tuple(_build_holding(h) for h in holdings or [])
    return PortfolioConfig(
        address=str(raw.get("address", "")),
        min_value=float(raw.get("min_value", 0.0)),
        chains=chains,
    )


def _text(raw: dict[str, Any], key: str, default: str = "") -> str:
    # an unset ${VAR} or a bare `key:` in YAML both come through as empty
    value = raw.get(key)
    return default if value is None or value == "" else str(value)


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram") or {}
    em = raw.get("email") or {}
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=_text(tg, "alert_bot_token"),
            log_bot_token=_text(tg, "log_bot_token"),
            chat_id=_text(tg, "chat_id"),
        ),
        email=EmailConfig(
            enabled=bool(em.get("enabled", False)),
            alert_email=_text(em, "alert_email"),
            smtp_server=_text(em, "smtp_server", EmailConfig.smtp_server),
            smtp_port=int(em.get("smtp_port") or EmailConfig.smtp_port),
            sender_email=_text(em, "sender_email"),
            sender_password=_text(em, "sender_password"),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            current working directory.
    """
    load_dotenv()

    if config_path is None:
        config_path = Path.cwd() / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {}), raw.get("alerts", {})),
        portfolio=_build_portfolio(raw.get("portfolio", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def validate_thresholds(t: AlertThresholds) -> None:
    """Raise on inconsistent alert thresholds."""
    if t.price_volatility_pct < 0:
        raise ValueError("price_volatility_pct must be non-negative")
    if t.volatility_high_count < 0:
        raise ValueError("volatility_high_count must be non-negative")
    if t.concentration_high < t.concentration_warning:
        raise ValueError("concentration_high must be >= concentration_warning")
    if t.liquidity_high > t.liquidity_warning:
        raise ValueError("liquidity_high must be <= liquidity_warning")
    if t.security_critical > t.security_warning:
        raise ValueError("security_critical must be <= security_warning")
    if not 0.0 <= t.market_crash_probability <= 1.0:
        raise ValueError("market_crash_probability must be within [0, 1]")
    if t.price_move_pct < 0 or t.price_move_high_pct < t.price_move_pct:
        raise ValueError("price_move_high_pct must be >= price_move_pct >= 0")
    if t.position_change_pct < 0 or t.position_change_high_pct < t.position_change_pct:
        raise ValueError("position_change_high_pct must be >= position_change_pct >= 0")


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if cfg.monitor.interval_seconds <= 0:
        raise ValueError("monitor.interval_seconds must be positive")
    if cfg.monitor.notify_cooldown_seconds < 0:
        raise ValueError("monitor.notify_cooldown_seconds must be non-negative")

    validate_thresholds(cfg.monitor.thresholds)

    if not cfg.portfolio.address:
        raise ValueError("portfolio.address is required")

    for chain, holdings in cfg.portfolio.chains.items():
        for holding in holdings:
            if not holding.symbol:
                raise ValueError(f"Holding on chain '{chain}' has no symbol")

    tg = cfg.notifications.telegram
    if tg.enabled and not (tg.chat_id and tg.alert_bot_token):
        logger.warning("Telegram is enabled but chat_id or alert_bot_token is empty")
    em = cfg.notifications.email
    if em.enabled and not em.alert_email:
        logger.warning("Email is enabled but alert_email is empty")
