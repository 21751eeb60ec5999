"""Shared test fixtures and sample data."""
from __future__ import annotations

import random
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from riskwatch.config import (
    AlertThresholds,
    AppConfig,
    EmailConfig,
    HoldingConfig,
    MonitorConfig,
    NotificationsConfig,
    PortfolioConfig,
    TelegramConfig,
)
from riskwatch.models import Portfolio, Severity, Token
from riskwatch.portfolio import build_portfolio
from riskwatch.risk.alerts import AlertEngine


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_token() -> Callable[..., Token]:
    def _make(
        symbol: str = "ETH",
        value: float = 1000.0,
        change_24h: float = 0.0,
        risk_score: int = 50,
        contract_address: str = "",
        **kwargs,
    ) -> Token:
        price = kwargs.pop("price", 1.0)
        return Token(
            symbol=symbol,
            name=kwargs.pop("name", symbol),
            balance=kwargs.pop("balance", value / price if price else 0.0),
            price=price,
            value=value,
            change_24h=change_24h,
            risk_score=risk_score,
            contract_address=contract_address,
            is_native=kwargs.pop("is_native", not contract_address),
            **kwargs,
        )

    return _make


@pytest.fixture()
def eth_shib_portfolio(make_token: Callable[..., Token]) -> Portfolio:
    """80/20 split: ETH is stable and safe, SHIB moved 35% in a day."""
    return build_portfolio(
        "0xWALLET123",
        [
            make_token("ETH", value=8000.0, change_24h=5.0, risk_score=80),
            make_token("SHIB", value=2000.0, change_24h=35.0, risk_score=20),
        ],
    )


@pytest.fixture()
def empty_portfolio() -> Portfolio:
    return Portfolio(address="0xEMPTY")


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_thresholds() -> AlertThresholds:
    return AlertThresholds()


@pytest.fixture()
def engine(sample_thresholds: AlertThresholds) -> AlertEngine:
    return AlertEngine(sample_thresholds, rng=random.Random(1234))


@pytest.fixture()
def sample_monitor_config(sample_thresholds: AlertThresholds) -> MonitorConfig:
    return MonitorConfig(
        interval_seconds=0.05,
        notify_min_severity=Severity.MEDIUM,
        notify_cooldown_seconds=0.0,
        thresholds=sample_thresholds,
    )


@pytest.fixture()
def sample_app_config(sample_monitor_config: MonitorConfig) -> AppConfig:
    return AppConfig(
        monitor=sample_monitor_config,
        portfolio=PortfolioConfig(
            address="0xWALLET123",
            min_value=1.0,
            chains={
                "eth-mainnet": (
                    HoldingConfig(
                        symbol="ETH",
                        name="Ether",
                        balance="2000000000000000000",
                        decimals=18,
                        price=4000.0,
                        change_24h=5.0,
                    ),
                ),
            },
        ),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
            email=EmailConfig(enabled=False),
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    monitor:
      interval_seconds: 15
      notify_min_severity: medium
    alerts:
      price_volatility_pct: 25
      concentration_warning: 60
      concentration_high: 80
    portfolio:
      address: "0xTEST"
      min_value: 1.0
      chains:
        eth-mainnet:
          - symbol: ETH
            name: Ether
            balance: "1000000000000000000"
            decimals: 18
            price: 3000
            change_24h: 2.5
          - symbol: USDC
            name: USD Coin
            balance: 500000000
            decimals: 6
            price: 1.0
            contract_address: "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
        bsc-mainnet:
          - symbol: USDC
            name: USD Coin
            balance: 250000000
            decimals: 6
            price: 1.0
            contract_address: "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
      email:
        enabled: false
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
