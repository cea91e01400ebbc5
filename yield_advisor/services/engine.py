from __future__ import annotations

import asyncio
import logging
from typing import Dict, FrozenSet, List, Sequence, Tuple

from yield_advisor.clients.base import DeFiDataProvider, PortfolioProvider
from yield_advisor.errors import InvalidInput
from yield_advisor.models import (
    AllocationTable,
    EnrichedPool,
    HoldingOpportunities,
    InvestmentOpportunity,
    Pool,
    PortfolioAnalysis,
    PortfolioHolding,
    PortfolioSnapshot,
    RISK_LEVELS,
    RiskThresholds,
    TokenAllocation,
    YieldFarmingOpportunity,
)
from yield_advisor.services.catalog import dedupe_pools, fetch_pool_catalog
from yield_advisor.services.enrichment import enrich_pools
from yield_advisor.services.optimizer import rank_opportunities, rank_yield_farming, to_opportunity
from yield_advisor.services.portfolio import DEFAULT_STABLECOINS, analyze_portfolio
from yield_advisor.services.risk import DEFAULT_RISK_THRESHOLDS
from yield_advisor.services.strategy import DEFAULT_ALLOCATION_TABLE, build_allocation_strategy
from yield_advisor.utils.tasks import gather_bounded, raise_unexpected
from yield_advisor.utils.validation import is_valid_wallet_address

logger = logging.getLogger(__name__)

TOP_POOL_SORT_KEYS = ("apy", "tvl", "volume24h")
YIELD_FARMING_SCAN_LIMIT = 100


class RecommendationEngine:
    """Stateless recommendation engine over one batch of provider calls.

    Nothing is cached between calls; every method fetches what it needs
    and returns freshly built models.
    """

    def __init__(
        self,
        defi: DeFiDataProvider,
        wallet: PortfolioProvider | None = None,
        *,
        thresholds: RiskThresholds = DEFAULT_RISK_THRESHOLDS,
        allocation_table: AllocationTable = DEFAULT_ALLOCATION_TABLE,
        stablecoins: FrozenSet[str] = DEFAULT_STABLECOINS,
        concurrency: int = 10,
    ):
        self.defi = defi
        self.wallet = wallet
        self.thresholds = thresholds
        self.allocation_table = allocation_table
        self.stablecoins = stablecoins
        self.concurrency = concurrency

    async def rank_opportunities(
        self,
        tokens: Sequence[str],
        risk_profile: str = "medium",
        limit: int = 5,
        *,
        dex: Sequence[str] | None = None,
        page: int = 1,
        page_limit: int = 10,
    ) -> List[InvestmentOpportunity]:
        if risk_profile not in RISK_LEVELS:
            raise InvalidInput(f"Unknown risk profile '{risk_profile}'")
        listed = await fetch_pool_catalog(
            self.defi, tokens, dex=dex, page=page, limit=page_limit, concurrency=self.concurrency
        )
        unique = dedupe_pools(listed)
        batch = await enrich_pools(self.defi, unique, concurrency=self.concurrency)
        ranked = rank_opportunities(batch.pools, risk_profile, limit, self.thresholds)
        logger.info(
            f"Ranked {len(ranked)} opportunities (profile={risk_profile}, "
            f"listed={len(listed)}, unique={len(unique)}, enriched={len(batch.pools)})"
        )
        return ranked

    async def describe_pool(self, pool_address: str) -> InvestmentOpportunity:
        if not pool_address or not pool_address.strip():
            raise InvalidInput("Pool address is required")
        tasks = [
            asyncio.ensure_future(self.defi.get_pool_by_address(pool_address)),
            asyncio.ensure_future(self.defi.get_liquidity_details(pool_address)),
        ]
        try:
            pool, details = await asyncio.gather(*tasks)
        except BaseException:
            # the sibling fetch must not outlive this call
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return to_opportunity(EnrichedPool(pool=pool, details=details), self.thresholds)

    async def rank_pair_opportunities(
        self,
        token_a: str,
        token_b: str,
        risk_profile: str = "medium",
        limit: int = 5,
        *,
        dex: Sequence[str] | None = None,
        page: int = 1,
        page_limit: int = 10,
    ) -> List[InvestmentOpportunity]:
        """Same ranking as `rank_opportunities`, over the pools of one token pair."""
        if not token_a or not token_a.strip() or not token_b or not token_b.strip():
            raise InvalidInput("Both pair tokens are required")
        if risk_profile not in RISK_LEVELS:
            raise InvalidInput(f"Unknown risk profile '{risk_profile}'")
        if page < 1 or page_limit < 1:
            raise InvalidInput("page and page_limit must be >= 1")
        pools = dedupe_pools(await self.defi.get_pools_by_pair(token_a, token_b, page, page_limit, dex))
        batch = await enrich_pools(self.defi, pools, concurrency=self.concurrency)
        return rank_opportunities(batch.pools, risk_profile, limit, self.thresholds)

    async def top_pools(self, limit: int = 10, sort_by: str = "apy") -> List[InvestmentOpportunity]:
        """Upstream's top performing pools, classified, in upstream order."""
        if sort_by not in TOP_POOL_SORT_KEYS:
            raise InvalidInput(f"Unknown sort key '{sort_by}', expected one of {list(TOP_POOL_SORT_KEYS)}")
        if limit < 1:
            raise InvalidInput("limit must be >= 1")
        pools = dedupe_pools(await self.defi.get_top_performing_pools(limit, sort_by))
        batch = await enrich_pools(self.defi, pools, concurrency=self.concurrency)
        return [to_opportunity(p, self.thresholds) for p in batch.pools]

    async def find_yield_farming(
        self,
        investment_amount: float,
        base_token: str,
        min_apy: float = 5.0,
    ) -> List[YieldFarmingOpportunity]:
        """Pools for `base_token` paying at least `min_apy`, with the yearly USD yield on the amount."""
        if not base_token or not base_token.strip():
            raise InvalidInput("Base token is required")
        if investment_amount < 0 or min_apy < 0:
            raise InvalidInput("investment_amount and min_apy must be >= 0")
        pools = dedupe_pools(await self.defi.get_pools_by_token(base_token, 1, YIELD_FARMING_SCAN_LIMIT))
        batch = await enrich_pools(self.defi, pools, concurrency=self.concurrency)
        found = rank_yield_farming(batch.pools, investment_amount, min_apy, self.thresholds)
        logger.info(f"Yield farming for {base_token}: {len(found)}/{len(pools)} pools at >= {min_apy}% APY")
        return found

    def analyze_portfolio(self, snapshot: PortfolioSnapshot) -> PortfolioAnalysis:
        return analyze_portfolio(snapshot, self.stablecoins)

    async def analyze_wallet(self, wallet_address: str) -> PortfolioAnalysis:
        snapshot = await self._fetch_portfolio(wallet_address)
        return self.analyze_portfolio(snapshot)

    def build_allocation_strategy(self, risk_profile: str, investment_amount: float) -> List[TokenAllocation]:
        return build_allocation_strategy(risk_profile, investment_amount, self.allocation_table)

    async def find_yield_opportunities(self, wallet_address: str, per_token: int = 3) -> List[HoldingOpportunities]:
        """Best pools for each token the wallet holds, by APY.

        Listings are fetched in one bounded stage, then every listed pool is
        enriched in a second bounded stage, so neither stage ever has more
        than `concurrency` calls in flight.
        """
        if per_token < 1:
            raise InvalidInput("per_token must be >= 1")
        snapshot = await self._fetch_portfolio(wallet_address)
        holdings = [t for t in snapshot.tokens if t.mint and t.balance]

        listings = await gather_bounded(
            (self.defi.get_pools_by_token(h.mint) for h in holdings),
            self.concurrency,
        )
        raise_unexpected(listings)

        listed: List[Tuple[PortfolioHolding, List[Pool]]] = []
        for holding, result in zip(holdings, listings):
            if isinstance(result, BaseException):
                logger.warning(f"Pool listing failed for holding {holding.mint}: {result}")
                continue
            listed.append((holding, result[:per_token]))

        unique = dedupe_pools([pool for _, pools in listed for pool in pools])
        batch = await enrich_pools(self.defi, unique, concurrency=self.concurrency)
        by_address: Dict[str, EnrichedPool] = {p.pool.address: p for p in batch.pools}

        out: List[HoldingOpportunities] = []
        for holding, pools in listed:
            enriched = [by_address[p.address] for p in pools if p.address in by_address]
            if not enriched:
                continue
            out.append(
                HoldingOpportunities(
                    symbol=holding.symbol or "Unknown",
                    token_address=holding.mint,
                    balance=holding.balance,
                    balance_usd=holding.value_usd or 0.0,
                    opportunities=rank_opportunities(enriched, "high", per_token, self.thresholds),
                )
            )
        return out

    async def _fetch_portfolio(self, wallet_address: str) -> PortfolioSnapshot:
        if self.wallet is None:
            raise RuntimeError("No portfolio provider configured")
        if not is_valid_wallet_address(wallet_address):
            raise InvalidInput(f"Invalid wallet address '{wallet_address}'")
        return await self.wallet.get_portfolio(wallet_address)
