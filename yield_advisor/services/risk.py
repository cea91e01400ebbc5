from __future__ import annotations

import math

from yield_advisor.errors import InvalidInput
from yield_advisor.models import LiquidityDetails, RiskThresholds, RiskTier

DEFAULT_RISK_THRESHOLDS = RiskThresholds()


def classify_risk(details: LiquidityDetails, thresholds: RiskThresholds = DEFAULT_RISK_THRESHOLDS) -> RiskTier:
    # Strict comparisons on both sides: tvl == 1_000_000 is not "low"
    if details.tvl > thresholds.low_min_tvl and details.apy < thresholds.low_max_apy:
        return "low"
    if details.tvl > thresholds.medium_min_tvl and details.apy < thresholds.medium_max_apy:
        return "medium"
    return "high"


def calculate_impermanent_loss(initial_price_ratio: float, current_price_ratio: float) -> float:
    """Impermanent loss of a 50/50 constant-product position, in % (<= 0).

    IL = 2 * sqrt(r) / (1 + r) - 1, with r = current / initial price ratio.
    """
    if initial_price_ratio <= 0 or current_price_ratio <= 0:
        raise InvalidInput("Price ratios must be positive")
    r = current_price_ratio / initial_price_ratio
    return (2.0 * math.sqrt(r) / (1.0 + r) - 1.0) * 100.0
