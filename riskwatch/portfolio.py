"""Portfolio assembly and multi-chain merging."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from .config import PortfolioConfig
from .models import Portfolio, Token
from .valuation import token_from_holding

logger = logging.getLogger(__name__)

MULTI_CHAIN = "multi-chain"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def empty_portfolio(address: str, chain: str = "") -> Portfolio:
    return Portfolio(address=address, last_updated=_now_iso(), chain=chain)


def _change_24h(tokens: Iterable[Token]) -> tuple[float, float]:
    """Absolute and percent 24h change implied by each token's change."""
    current = 0.0
    previous = 0.0
    for token in tokens:
        current += token.value
        # A -100% move leaves no recoverable previous value.
        if token.change_24h > -100:
            previous += token.value / (1 + token.change_24h / 100)
    change = current - previous
    percent = (change / previous) * 100 if previous > 0 else 0.0
    return change, percent


def build_portfolio(
    address: str,
    tokens: Iterable[Token],
    chain: str = "",
    min_value: float = 0.0,
) -> Portfolio:
    """Assemble a Portfolio, dropping dust positions below ``min_value``."""
    kept = tuple(t for t in tokens if t.value >= min_value)
    total_value = sum(t.value for t in kept)
    change, percent = _change_24h(kept)
    return Portfolio(
        address=address,
        tokens=kept,
        total_value=total_value,
        change_24h=change,
        change_24h_percent=percent,
        last_updated=_now_iso(),
        chain=chain,
    )


def merge_portfolios(address: str, portfolios: Iterable[Portfolio]) -> Portfolio:
    """Merge per-chain portfolios, summing tokens that share a merge key."""
    merged: dict[tuple[str, str], Token] = {}
    change_24h = 0.0

    for portfolio in portfolios:
        for token in portfolio.tokens:
            existing = merged.get(token.key)
            if existing is None:
                merged[token.key] = token
            else:
                merged[token.key] = replace(
                    existing,
                    balance=existing.balance + token.balance,
                    value=existing.value + token.value,
                    chain=MULTI_CHAIN,
                )
        change_24h += portfolio.change_24h

    tokens = tuple(merged.values())
    if not tokens:
        return empty_portfolio(address, chain=MULTI_CHAIN)

    total_value = sum(t.value for t in tokens)
    previous = total_value - change_24h
    return Portfolio(
        address=address,
        tokens=tokens,
        total_value=total_value,
        change_24h=change_24h,
        change_24h_percent=(change_24h / previous) * 100 if previous > 0 else 0.0,
        last_updated=_now_iso(),
        chain=MULTI_CHAIN,
    )


def portfolio_from_config(cfg: PortfolioConfig) -> Portfolio:
    """Build the merged portfolio described by the ``portfolio`` config section."""
    per_chain: list[Portfolio] = []
    for chain, holdings in cfg.chains.items():
        tokens = [token_from_holding(h, chain=chain) for h in holdings]
        portfolio = build_portfolio(
            cfg.address, tokens, chain=chain, min_value=cfg.min_value
        )
        logger.debug(
            "%s: %d token(s), $%.2f", chain, len(portfolio.tokens), portfolio.total_value
        )
        if portfolio.tokens:
            per_chain.append(portfolio)

    return merge_portfolios(cfg.address, per_chain)
