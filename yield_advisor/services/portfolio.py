from __future__ import annotations

import logging
from typing import FrozenSet, List

from yield_advisor.models import (
    PortfolioAllocationView,
    PortfolioAnalysis,
    PortfolioRecommendation,
    PortfolioSnapshot,
)

logger = logging.getLogger(__name__)

NATIVE_SYMBOL = "SOL"
NATIVE_MINT = "So11111111111111111111111111111111111111112"

DEFAULT_STABLECOINS: FrozenSet[str] = frozenset({"USDC", "USDT", "BUSD", "DAI", "TUSD", "USDD"})

CONCENTRATION_LIMIT = 50.0
MIN_STABLECOIN_SHARE = 10.0
MIN_NATIVE_SHARE = 5.0


def analyze_portfolio(
    snapshot: PortfolioSnapshot,
    stablecoins: FrozenSet[str] = DEFAULT_STABLECOINS,
) -> PortfolioAnalysis:
    """Break a holder's portfolio into allocation shares and flag imbalances.

    The native balance is counted as a value alongside the token USD values.
    A portfolio worth nothing gets 0% everywhere and no recommendations.
    """
    total_value = snapshot.sol_balance + sum(t.value_usd or 0.0 for t in snapshot.tokens)

    def share(value: float) -> float:
        return (value / total_value) * 100.0 if total_value > 0 else 0.0

    allocations: List[PortfolioAllocationView] = [
        PortfolioAllocationView(
            symbol=t.symbol or "Unknown",
            mint=t.mint,
            value_usd=t.value_usd or 0.0,
            percentage=share(t.value_usd or 0.0),
        )
        for t in snapshot.tokens
    ]
    native = PortfolioAllocationView(
        symbol=NATIVE_SYMBOL,
        mint=NATIVE_MINT,
        value_usd=snapshot.sol_balance,
        percentage=share(snapshot.sol_balance),
    )
    allocations.append(native)
    allocations.sort(key=lambda a: a.percentage, reverse=True)

    recommendations: List[PortfolioRecommendation] = []
    if total_value > 0:
        recommendations = _recommend(allocations, native, stablecoins)
    else:
        logger.info("Portfolio has zero total value; skipping recommendations")

    return PortfolioAnalysis(
        total_value=total_value,
        token_count=len(snapshot.tokens),
        nft_count=snapshot.nft_count,
        allocations=allocations,
        recommendations=recommendations,
    )


def _recommend(
    allocations: List[PortfolioAllocationView],
    native: PortfolioAllocationView,
    stablecoins: FrozenSet[str],
) -> List[PortfolioRecommendation]:
    out: List[PortfolioRecommendation] = []

    top = allocations[0]
    if top.percentage > CONCENTRATION_LIMIT:
        out.append(
            PortfolioRecommendation(
                type="DIVERSIFICATION",
                title="Consider diversifying your portfolio",
                description=(
                    f"Your portfolio is heavily concentrated in {top.symbol} ({top.percentage:.2f}%). "
                    "Consider diversifying."
                ),
                priority="HIGH",
            )
        )

    stable_share = sum(a.percentage for a in allocations if a.symbol in stablecoins)
    if stable_share < MIN_STABLECOIN_SHARE:
        out.append(
            PortfolioRecommendation(
                type="RISK_MANAGEMENT",
                title="Increase stablecoin allocation",
                description=(
                    f"Your portfolio has only {stable_share:.2f}% in stablecoins. "
                    "Consider increasing this allocation for better risk management."
                ),
                priority="MEDIUM",
            )
        )

    if native.percentage < MIN_NATIVE_SHARE:
        out.append(
            PortfolioRecommendation(
                type="NETWORK_TOKEN",
                title=f"Increase {NATIVE_SYMBOL} holdings",
                description=(
                    f"Your {NATIVE_SYMBOL} allocation is only {native.percentage:.2f}%. "
                    f"Consider holding more {NATIVE_SYMBOL} for transaction fees and network participation."
                ),
                priority="LOW",
            )
        )
    return out
