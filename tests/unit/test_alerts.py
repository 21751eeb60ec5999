"""Unit tests for the alert rule engine."""
from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Callable

import pytest

from riskwatch.config import AlertThresholds
from riskwatch.models import AlertType, Portfolio, RiskMetrics, Severity, Token
from riskwatch.portfolio import build_portfolio
from riskwatch.risk.alerts import (
    AlertEngine,
    concentration_risk_rule,
    liquidity_drop_rule,
    new_alert_id,
    position_change_rule,
    price_move_rule,
)
from riskwatch.risk.metrics import compute_risk_metrics

MakeToken = Callable[..., Token]

CALM = RiskMetrics(
    portfolio_risk_score=50,
    volatility_index=10,
    liquidity_score=60,
    concentration_risk=40,
    security_score=70,
    last_updated="",
)


@pytest.fixture()
def calm_portfolio(make_token: MakeToken) -> Portfolio:
    return build_portfolio(
        "0xA",
        [make_token("ETH", value=6000.0), make_token("USDC", value=4000.0)],
    )


def _types(alerts) -> list[AlertType]:
    return [a.type for a in alerts]


class TestZeroPortfolio:
    def test_no_alerts_for_empty(self, engine: AlertEngine, empty_portfolio: Portfolio) -> None:
        metrics = compute_risk_metrics(empty_portfolio)
        assert engine.evaluate(empty_portfolio, metrics) == []

    def test_no_alerts_for_zero_value(
        self, engine: AlertEngine, make_token: MakeToken
    ) -> None:
        p = build_portfolio("0xA", [make_token("A", value=0.0, change_24h=90.0)])
        assert engine.evaluate(p, compute_risk_metrics(p)) == []


class TestPriceVolatility:
    def test_exactly_at_threshold_does_not_fire(
        self, engine: AlertEngine, make_token: MakeToken
    ) -> None:
        p = build_portfolio(
            "0xA", [make_token("A", change_24h=20.0), make_token("B", change_24h=-20.0)]
        )
        assert AlertType.PRICE_VOLATILITY not in _types(engine.evaluate(p, CALM))

    def test_just_above_threshold_fires(
        self, engine: AlertEngine, make_token: MakeToken
    ) -> None:
        p = build_portfolio(
            "0xA", [make_token("A", change_24h=1.0), make_token("B", change_24h=-20.01)]
        )
        [alert] = engine.evaluate(p, CALM)
        assert alert.type is AlertType.PRICE_VOLATILITY
        assert alert.severity is Severity.MEDIUM
        assert alert.token_symbol == "B"
        assert alert.current_value == 1
        assert alert.threshold_value == 20.0
        assert not alert.is_read

    def test_two_movers_is_medium_three_is_high(
        self, engine: AlertEngine, make_token: MakeToken
    ) -> None:
        two = build_portfolio("0xA", [make_token(s, change_24h=25.0) for s in "AB"])
        three = build_portfolio("0xA", [make_token(s, change_24h=25.0) for s in "ABC"])
        assert engine.evaluate(two, CALM)[0].severity is Severity.MEDIUM
        assert engine.evaluate(three, CALM)[0].severity is Severity.HIGH


class TestMetricThresholds:
    @pytest.mark.parametrize(
        "value, expected",
        [(70, None), (71, Severity.MEDIUM), (85, Severity.MEDIUM), (86, Severity.HIGH)],
    )
    def test_concentration(
        self,
        engine: AlertEngine,
        calm_portfolio: Portfolio,
        value: int,
        expected: Severity | None,
    ) -> None:
        alerts = engine.evaluate(calm_portfolio, replace(CALM, concentration_risk=value))
        fired = [a for a in alerts if a.type is AlertType.CONCENTRATION_RISK]
        if expected is None:
            assert fired == []
        else:
            assert fired[0].severity is expected
            assert fired[0].token_symbol == "ETH"
            assert fired[0].current_value == pytest.approx(60.0)
            assert fired[0].threshold_value == 70.0
            assert "60.0% concentrated in ETH" in fired[0].message

    @pytest.mark.parametrize(
        "value, expected",
        [(30, None), (29, Severity.MEDIUM), (15, Severity.MEDIUM), (14, Severity.HIGH)],
    )
    def test_liquidity(
        self,
        engine: AlertEngine,
        calm_portfolio: Portfolio,
        value: int,
        expected: Severity | None,
    ) -> None:
        alerts = engine.evaluate(calm_portfolio, replace(CALM, liquidity_score=value))
        fired = [a for a in alerts if a.type is AlertType.LIQUIDITY_DROP]
        if expected is None:
            assert fired == []
        else:
            assert fired[0].severity is expected
            assert fired[0].current_value == value
            assert fired[0].threshold_value == 30.0

    @pytest.mark.parametrize(
        "value, expected",
        [(40, None), (39, Severity.HIGH), (20, Severity.HIGH), (19, Severity.CRITICAL)],
    )
    def test_security(
        self,
        engine: AlertEngine,
        calm_portfolio: Portfolio,
        value: int,
        expected: Severity | None,
    ) -> None:
        alerts = engine.evaluate(calm_portfolio, replace(CALM, security_score=value))
        fired = [a for a in alerts if a.type is AlertType.SECURITY_THREAT]
        if expected is None:
            assert fired == []
        else:
            assert fired[0].severity is expected

    def test_calm_portfolio_is_quiet(
        self, engine: AlertEngine, calm_portfolio: Portfolio
    ) -> None:
        assert engine.evaluate(calm_portfolio, CALM) == []

    def test_custom_thresholds(self, calm_portfolio: Portfolio) -> None:
        engine = AlertEngine(AlertThresholds(liquidity_warning=70.0, liquidity_high=65.0))
        [alert] = engine.evaluate(calm_portfolio, CALM)
        assert alert.type is AlertType.LIQUIDITY_DROP
        assert alert.severity is Severity.HIGH


class TestMarketCrash:
    def test_disabled_by_default(self, calm_portfolio: Portfolio) -> None:
        engine = AlertEngine(AlertThresholds(market_crash_probability=1.0))
        assert engine.evaluate(calm_portfolio, CALM) == []

    def test_enabled_fires_critical(self, calm_portfolio: Portfolio) -> None:
        engine = AlertEngine(
            AlertThresholds(market_crash_enabled=True, market_crash_probability=1.0),
            rng=random.Random(0),
        )
        [alert] = engine.evaluate(calm_portfolio, CALM)
        assert alert.type is AlertType.MARKET_CRASH
        assert alert.severity is Severity.CRITICAL
        assert alert.id.startswith("market-crash-")

    def test_zero_probability_never_fires(self, calm_portfolio: Portfolio) -> None:
        engine = AlertEngine(
            AlertThresholds(market_crash_enabled=True, market_crash_probability=0.0),
            rng=random.Random(0),
        )
        assert all(engine.evaluate(calm_portfolio, CALM) == [] for _ in range(50))


class TestRuleIsolation:
    def test_failing_rule_does_not_stop_others(
        self, calm_portfolio: Portfolio, caplog: pytest.LogCaptureFixture
    ) -> None:
        def broken_rule(ctx):
            raise RuntimeError("boom")

        engine = AlertEngine(rules=(broken_rule, liquidity_drop_rule, concentration_risk_rule))
        metrics = replace(CALM, liquidity_score=10, concentration_risk=90)

        with caplog.at_level(logging.ERROR, logger="riskwatch.risk.alerts"):
            alerts = engine.evaluate(calm_portfolio, metrics)

        assert _types(alerts) == [AlertType.LIQUIDITY_DROP, AlertType.CONCENTRATION_RISK]
        assert "broken_rule" in caplog.text


class TestAlertIds:
    def test_prefix(self) -> None:
        assert new_alert_id(AlertType.LIQUIDITY_DROP).startswith("liquidity-")

    def test_unique_across_evaluations(
        self, engine: AlertEngine, calm_portfolio: Portfolio
    ) -> None:
        metrics = replace(CALM, liquidity_score=5, security_score=5)
        ids = [a.id for _ in range(200) for a in engine.evaluate(calm_portfolio, metrics)]
        assert len(ids) == 400
        assert len(set(ids)) == len(ids)


class TestEndToEnd:
    def test_eth_shib_raises_single_volatility_alert(
        self, engine: AlertEngine, eth_shib_portfolio: Portfolio
    ) -> None:
        metrics = compute_risk_metrics(eth_shib_portfolio)
        alerts = engine.evaluate(eth_shib_portfolio, metrics)

        assert len(alerts) == 1
        assert alerts[0].type is AlertType.PRICE_VOLATILITY
        assert alerts[0].severity is Severity.MEDIUM
        assert alerts[0].token_symbol == "SHIB"


class TestHoldingChangeRules:
    @pytest.fixture()
    def change_engine(self) -> AlertEngine:
        return AlertEngine(rules=(price_move_rule, position_change_rule))

    def _snapshot(self, make_token: MakeToken, **eth) -> Portfolio:
        return build_portfolio(
            "0xA", [make_token("ETH", **eth), make_token("USDC", value=4000.0)]
        )

    def test_no_previous_snapshot(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        current = self._snapshot(make_token, value=6000.0, price=150.0)
        assert change_engine.evaluate(current, CALM) == []

    def test_price_move_medium(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(make_token, value=6000.0, price=100.0)
        current = self._snapshot(make_token, value=6000.0, price=115.0)

        [alert] = change_engine.evaluate(current, CALM, previous=previous)

        assert alert.type is AlertType.PRICE_MOVE
        assert alert.severity is Severity.MEDIUM
        assert alert.token_symbol == "ETH"
        assert alert.message == "ETH price increased by 15.00%"
        assert alert.id.startswith("price-")

    def test_price_drop_high(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(make_token, value=6000.0, price=100.0)
        current = self._snapshot(make_token, value=6000.0, price=75.0)

        [alert] = change_engine.evaluate(current, CALM, previous=previous)

        assert alert.severity is Severity.HIGH
        assert "decreased by 25.00%" in alert.message

    def test_small_price_move_ignored(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(make_token, value=6000.0, price=100.0)
        current = self._snapshot(make_token, value=6000.0, price=109.0)
        assert change_engine.evaluate(current, CALM, previous=previous) == []

    def test_position_change_boundary_is_medium(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(make_token, value=4000.0)
        current = self._snapshot(make_token, value=6000.0)

        [alert] = change_engine.evaluate(current, CALM, previous=previous)

        assert alert.type is AlertType.POSITION_CHANGE
        assert alert.severity is Severity.MEDIUM
        assert alert.message == "Your ETH position increased by 50.0%"

    def test_position_collapse_is_high(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(make_token, value=5000.0)
        current = self._snapshot(make_token, value=2000.0)

        [alert] = change_engine.evaluate(current, CALM, previous=previous)

        assert alert.severity is Severity.HIGH
        assert "decreased by 60.0%" in alert.message

    def test_zero_previous_price_and_value_are_skipped(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(make_token, value=0.0, price=0.0)
        current = self._snapshot(make_token, value=6000.0, price=100.0)
        assert change_engine.evaluate(current, CALM, previous=previous) == []

    def test_holdings_matched_by_contract_and_symbol(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = self._snapshot(
            make_token, value=1000.0, price=10.0, contract_address="0xwrapped"
        )
        current = self._snapshot(make_token, value=6000.0, price=100.0)
        assert change_engine.evaluate(current, CALM, previous=previous) == []

    def test_one_alert_per_moving_holding(
        self, change_engine: AlertEngine, make_token: MakeToken
    ) -> None:
        previous = build_portfolio(
            "0xA",
            [
                make_token("ETH", value=1000.0, price=100.0),
                make_token("SOL", value=1000.0, price=10.0),
            ],
        )
        current = build_portfolio(
            "0xA",
            [
                make_token("ETH", value=1000.0, price=130.0),
                make_token("SOL", value=1000.0, price=7.0),
            ],
        )

        alerts = change_engine.evaluate(current, CALM, previous=previous)

        assert [a.token_symbol for a in alerts] == ["ETH", "SOL"]
        assert all(a.type is AlertType.PRICE_MOVE for a in alerts)


class TestHoldingHints:
    def test_off_by_default(self, engine: AlertEngine, eth_shib_portfolio: Portfolio) -> None:
        alerts = engine.evaluate(eth_shib_portfolio, compute_risk_metrics(eth_shib_portfolio))
        assert AlertType.RISKY_TOKENS not in _types(alerts)
        assert AlertType.STAKING_OPPORTUNITY not in _types(alerts)

    def test_risky_tokens_and_staking(self, eth_shib_portfolio: Portfolio) -> None:
        engine = AlertEngine(AlertThresholds(holding_alerts_enabled=True))
        alerts = engine.evaluate(eth_shib_portfolio, compute_risk_metrics(eth_shib_portfolio))
        by_type = {a.type: a for a in alerts}

        risky = by_type[AlertType.RISKY_TOKENS]
        assert risky.severity is Severity.HIGH
        assert risky.token_symbol == "SHIB"
        assert risky.message == "1 token(s) in your portfolio have high risk scores"

        staking = by_type[AlertType.STAKING_OPPORTUNITY]
        assert staking.severity is Severity.LOW
        assert staking.token_symbol == "ETH"

    def test_small_stakable_position_ignored(self, make_token: MakeToken) -> None:
        engine = AlertEngine(AlertThresholds(holding_alerts_enabled=True))
        portfolio = build_portfolio("0xA", [make_token("SOL", value=100.0)])
        alerts = engine.evaluate(portfolio, CALM)
        assert AlertType.STAKING_OPPORTUNITY not in _types(alerts)
