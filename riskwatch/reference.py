"""Static reference data: prevention tips, support links and the DeFi yield table."""
from __future__ import annotations

from .models import DeFiOpportunity, Portfolio, SupportResource

_PREVENTION_TIPS = (
    "Diversify your portfolio across different asset classes and chains",
    "Set stop-loss orders for volatile positions",
    "Regularly review and revoke unnecessary token approvals",
    "Keep only small amounts in hot wallets, use hardware wallets for large amounts",
    "Monitor your portfolio regularly for unusual activity",
    "Avoid investing more than you can afford to lose",
    "Research tokens thoroughly before investing",
    "Use dollar-cost averaging to reduce timing risk",
    "Keep emergency funds in stable assets",
    "Stay updated with market news and regulatory changes",
)

_SUPPORT_RESOURCES = (
    SupportResource(
        title="DeFi Safety Guidelines",
        description="Learn about DeFi security best practices",
        url="https://defisafety.com/",
    ),
    SupportResource(
        title="Token Approval Revocation",
        description="Revoke unnecessary token approvals",
        url="https://revoke.cash/",
    ),
    SupportResource(
        title="Portfolio Risk Calculator",
        description="Calculate your portfolio risk metrics",
        url="https://portfolio-risk-calculator.com/",
    ),
    SupportResource(
        title="Emergency Response Guide",
        description="What to do if your wallet is compromised",
        url="https://wallet-security-guide.com/",
    ),
)


def get_risk_prevention_tips() -> list[str]:
    return list(_PREVENTION_TIPS)


def get_risk_support_resources() -> list[SupportResource]:
    return list(_SUPPORT_RESOURCES)


# ---------------------------------------------------------------------------
# DeFi yield suggestions
# ---------------------------------------------------------------------------

# (name, apy %, asset, risk, protocol)
DEFI_PROTOCOLS: tuple[tuple[str, float, str, str, str], ...] = (
    ("Lido", 4.2, "ETH", "Low", "lido"),
    ("Compound", 6.8, "USDC", "Low", "compound"),
    ("Aave", 5.5, "USDT", "Low", "aave"),
    ("Uniswap V3", 12.3, "ETH/USDC", "Medium", "uniswap"),
    ("PancakeSwap", 8.7, "BNB", "Medium", "pancakeswap"),
    ("Venus", 7.5, "BNB", "Medium", "venus"),
)

_MIN_AMOUNTS = {
    "ETH": 0.1,
    "USDC": 100,
    "USDT": 100,
    "SOL": 1,
    "BNB": 0.1,
    "MATIC": 10,
}

_DESCRIPTIONS = {
    "lido": "Stake ETH and earn rewards while maintaining liquidity",
    "compound": "Lend and borrow crypto assets with competitive rates",
    "aave": "Decentralized lending protocol with flash loans",
    "uniswap": "Automated market maker for token swaps and liquidity provision",
    "pancakeswap": "BSC-based DEX with farming and staking opportunities",
    "marinade": "Solana staking protocol with liquid staking tokens",
}


def _is_relevant(asset: str, holdings: set[str]) -> bool:
    if asset in holdings or asset.split("/")[0] in holdings:
        return True
    return asset == "ETH" and "WETH" in holdings


def find_defi_opportunities(portfolio: Portfolio) -> list[DeFiOpportunity]:
    """Yield opportunities for assets the portfolio already holds."""
    holdings = {t.symbol for t in portfolio.tokens}
    return [
        DeFiOpportunity(
            id=protocol,
            name=name,
            apy=apy,
            asset=asset,
            risk=risk,
            protocol=protocol,
            min_amount=_MIN_AMOUNTS.get(asset, 1),
            lock_period="No lock",
            description=_DESCRIPTIONS.get(protocol, "DeFi protocol for earning yield"),
        )
        for name, apy, asset, risk, protocol in DEFI_PROTOCOLS
        if _is_relevant(asset, holdings)
    ]
