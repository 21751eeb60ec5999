"""Unit tests for portfolio assembly and multi-chain merging."""
from __future__ import annotations

from typing import Callable

import pytest

from riskwatch.config import HoldingConfig, PortfolioConfig
from riskwatch.models import Token
from riskwatch.portfolio import (
    MULTI_CHAIN,
    build_portfolio,
    merge_portfolios,
    portfolio_from_config,
)

USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


class TestBuildPortfolio:
    def test_total_is_sum_of_values(self, make_token: Callable[..., Token]) -> None:
        p = build_portfolio(
            "0xA", [make_token("A", value=100.0), make_token("B", value=250.5)]
        )
        assert p.total_value == pytest.approx(sum(t.value for t in p.tokens))
        assert p.total_value == pytest.approx(350.5)

    def test_dust_filter(self, make_token: Callable[..., Token]) -> None:
        p = build_portfolio(
            "0xA",
            [make_token("A", value=0.5), make_token("B", value=10.0)],
            min_value=1.0,
        )
        assert [t.symbol for t in p.tokens] == ["B"]
        assert p.total_value == 10.0

    def test_change_24h(self, make_token: Callable[..., Token]) -> None:
        p = build_portfolio("0xA", [make_token("A", value=110.0, change_24h=10.0)])
        assert p.change_24h == pytest.approx(10.0)
        assert p.change_24h_percent == pytest.approx(10.0)

    def test_empty(self) -> None:
        p = build_portfolio("0xA", [])
        assert p.tokens == ()
        assert p.total_value == 0.0
        assert p.change_24h_percent == 0.0


class TestMergePortfolios:
    def test_merges_same_contract_and_symbol(
        self, make_token: Callable[..., Token]
    ) -> None:
        eth = build_portfolio(
            "0xA",
            [make_token("USDC", value=100.0, contract_address=USDC, chain="eth")],
            chain="eth",
        )
        bsc = build_portfolio(
            "0xA",
            [
                make_token("USDC", value=50.0, contract_address=USDC, chain="bsc"),
                make_token("BNB", value=300.0, chain="bsc"),
            ],
            chain="bsc",
        )
        merged = merge_portfolios("0xA", [eth, bsc])

        by_symbol = {t.symbol: t for t in merged.tokens}
        assert set(by_symbol) == {"USDC", "BNB"}
        assert by_symbol["USDC"].value == pytest.approx(150.0)
        assert by_symbol["USDC"].balance == pytest.approx(150.0)
        assert by_symbol["USDC"].chain == MULTI_CHAIN
        assert by_symbol["BNB"].chain == "bsc"
        assert merged.total_value == pytest.approx(450.0)
        assert merged.chain == MULTI_CHAIN

    def test_same_symbol_different_contract_kept_apart(
        self, make_token: Callable[..., Token]
    ) -> None:
        a = build_portfolio("0xA", [make_token("USDC", value=1.0, contract_address="0x1")])
        b = build_portfolio("0xA", [make_token("USDC", value=1.0, contract_address="0x2")])
        assert len(merge_portfolios("0xA", [a, b]).tokens) == 2

    def test_nothing_to_merge(self) -> None:
        merged = merge_portfolios("0xA", [])
        assert merged.tokens == ()
        assert merged.total_value == 0.0


class TestPortfolioFromConfig:
    def test_builds_and_merges(self) -> None:
        holding = HoldingConfig(
            symbol="USDC", balance="2000000", decimals=6, price=1.0, contract_address=USDC
        )
        cfg = PortfolioConfig(
            address="0xA",
            min_value=1.0,
            chains={
                "eth-mainnet": (holding,),
                "bsc-mainnet": (holding, HoldingConfig(symbol="DUST", balance="1", price=0.1)),
            },
        )
        p = portfolio_from_config(cfg)
        assert len(p.tokens) == 1
        assert p.tokens[0].value == pytest.approx(4.0)
        assert p.address == "0xA"

    def test_empty_config(self) -> None:
        p = portfolio_from_config(PortfolioConfig(address="0xA"))
        assert p.tokens == ()
        assert p.total_value == 0.0
        assert p.chain == MULTI_CHAIN
