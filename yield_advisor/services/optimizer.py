from __future__ import annotations

from typing import Dict, FrozenSet, List, Sequence

from yield_advisor.errors import InvalidInput
from yield_advisor.models import EnrichedPool, InvestmentOpportunity, RiskThresholds, YieldFarmingOpportunity
from yield_advisor.services.risk import DEFAULT_RISK_THRESHOLDS, classify_risk


ALLOWED_TIERS: Dict[str, FrozenSet[str]] = {
    "low": frozenset({"low"}),
    "medium": frozenset({"low", "medium"}),
    "high": frozenset({"low", "medium", "high"}),
}


def describe_opportunity(item: EnrichedPool) -> str:
    pool, d = item.pool, item.details
    return (
        f"{pool.dex} pool with {pool.pair}. "
        f"TVL: ${d.tvl:,.2f}, APY: {d.apy:.2f}%. "
        f"24h Volume: ${d.volume_24h:,.2f}, 24h Fees: ${d.fee_24h:,.2f}."
    )


def to_opportunity(item: EnrichedPool, thresholds: RiskThresholds = DEFAULT_RISK_THRESHOLDS) -> InvestmentOpportunity:
    return InvestmentOpportunity(
        pool=item.pool,
        expected_yield=item.details.apy,
        risk=classify_risk(item.details, thresholds),
        recommendation=describe_opportunity(item),
    )


def rank_opportunities(
    pools: Sequence[EnrichedPool],
    risk_profile: str,
    limit: int = 5,
    thresholds: RiskThresholds = DEFAULT_RISK_THRESHOLDS,
) -> List[InvestmentOpportunity]:
    allowed = ALLOWED_TIERS.get(risk_profile)
    if allowed is None:
        raise InvalidInput(f"Unknown risk profile '{risk_profile}', expected one of {sorted(ALLOWED_TIERS)}")
    if limit < 0:
        raise InvalidInput("limit must be >= 0")

    candidates = [o for o in (to_opportunity(p, thresholds) for p in pools) if o.risk in allowed]
    # sorted() is stable with reverse=True, so equal yields keep their order
    candidates = sorted(candidates, key=lambda o: o.expected_yield, reverse=True)
    return candidates[:limit]


def rank_yield_farming(
    pools: Sequence[EnrichedPool],
    investment_amount: float,
    min_apy: float = 5.0,
    thresholds: RiskThresholds = DEFAULT_RISK_THRESHOLDS,
) -> List[YieldFarmingOpportunity]:
    """Pools paying at least `min_apy`, best first, with the USD yield on `investment_amount`.

    Zero-APY pools never qualify, whatever `min_apy` is.
    """
    if investment_amount < 0:
        raise InvalidInput("investment_amount must be >= 0")
    if min_apy < 0:
        raise InvalidInput("min_apy must be >= 0")

    qualifying = [p for p in pools if p.details.apy > 0 and p.details.apy >= min_apy]
    qualifying = sorted(qualifying, key=lambda p: p.details.apy, reverse=True)
    return [
        YieldFarmingOpportunity(
            pool=p.pool,
            apy=p.details.apy,
            tvl=p.details.tvl,
            risk=classify_risk(p.details, thresholds),
            expected_yield=investment_amount * p.details.apy / 100,
        )
        for p in qualifying
    ]
