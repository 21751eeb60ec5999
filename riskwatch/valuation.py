"""Token valuation and the per-token heuristic risk score."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .models import ZERO_ADDRESS, Token

logger = logging.getLogger(__name__)

BASE_RISK_SCORE = 50
LIQUIDITY_BONUS = 20
CONTRACT_BONUS = 15
MATERIALITY_BONUS = 10
MATERIALITY_THRESHOLD = 1000.0
AGE_BONUS_MATURE = 15  # older than a year
AGE_BONUS_ESTABLISHED = 10  # older than a quarter


def valuate(
    raw_balance: int | float | str, decimals: int = 0, price: float = 0.0
) -> tuple[float, float]:
    """Convert a raw on-chain balance into ``(balance, usd_value)``.

    ``raw_balance`` may be a string so that 18-decimal integer balances keep
    their precision until the final division.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    if price < 0:
        raise ValueError(f"price must be non-negative, got {price}")

    try:
        raw = Decimal(str(raw_balance).strip() or "0")
    except InvalidOperation:
        raise ValueError(f"Invalid raw balance: {raw_balance!r}") from None
    if raw < 0:
        raise ValueError(f"raw balance must be non-negative, got {raw_balance}")

    balance = float(raw / (Decimal(10) ** decimals))
    return balance, balance * price


def has_contract(contract_address: str | None) -> bool:
    return bool(contract_address) and contract_address.lower() != ZERO_ADDRESS


def contract_age_days(
    created_at: str | None, now: datetime | None = None
) -> float | None:
    """Days since ``created_at`` (ISO-8601), or None when unknown."""
    if not created_at:
        return None
    try:
        created = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable contract creation date: %s", created_at)
        return None
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - created).total_seconds() / 86400


def token_risk_score(
    change_24h: float | None,
    contract_address: str | None,
    value: float,
    age_days: float | None = None,
) -> int:
    """Heuristic score in [0, 100]; a relative ranking hint, not a probability."""
    score = BASE_RISK_SCORE

    if change_24h:
        score += LIQUIDITY_BONUS

    if has_contract(contract_address):
        score += CONTRACT_BONUS

    if value > MATERIALITY_THRESHOLD:
        score += MATERIALITY_BONUS

    if age_days is not None:
        if age_days > 365:
            score += AGE_BONUS_MATURE
        elif age_days > 90:
            score += AGE_BONUS_ESTABLISHED

    return min(100, max(0, score))


def token_from_holding(
    holding: Mapping[str, Any] | Any, chain: str = "", now: datetime | None = None
) -> Token:
    """Build a valued, scored Token from a raw holding record.

    Accepts either a mapping or any object exposing the same attribute names
    (e.g. a ``HoldingConfig``).
    """
    get = holding.get if isinstance(holding, Mapping) else (
        lambda name, default=None: getattr(holding, name, default)
    )

    decimals = int(get("decimals", 0) or 0)
    price = float(get("price", 0.0) or 0.0)
    change_24h = float(get("change_24h", 0.0) or 0.0)
    contract_address = get("contract_address", "") or ""

    balance, value = valuate(get("balance", "0") or "0", decimals, price)
    quoted = get("value", None)
    if quoted is not None:
        value = float(quoted)

    age = contract_age_days(get("contract_created_at", None), now)

    return Token(
        symbol=get("symbol", "") or "UNKNOWN",
        name=get("name", "") or "Unknown Token",
        balance=balance,
        price=price,
        value=value,
        change_24h=change_24h,
        risk_score=token_risk_score(change_24h, contract_address, value, age),
        contract_address=contract_address,
        is_native=not contract_address,
        chain=chain,
        decimals=decimals,
    )
