from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from yield_advisor.clients.base import DeFiDataProvider
from yield_advisor.errors import EnrichmentFailure
from yield_advisor.models import EnrichedPool, Pool
from yield_advisor.utils.tasks import gather_bounded, raise_unexpected

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentBatch:
    """Pools that got liquidity details, plus a record of the ones dropped."""

    pools: List[EnrichedPool] = field(default_factory=list)
    failures: List[EnrichmentFailure] = field(default_factory=list)


async def enrich_pools(
    provider: DeFiDataProvider,
    pools: Sequence[Pool],
    *,
    concurrency: int = 10,
) -> EnrichmentBatch:
    results = await gather_bounded(
        (provider.get_liquidity_details(p.address) for p in pools),
        concurrency,
    )
    raise_unexpected(results)

    batch = EnrichmentBatch()
    for pool, result in zip(pools, results):
        if isinstance(result, BaseException):
            failure = EnrichmentFailure(pool.address, result)
            logger.warning(str(failure))
            batch.failures.append(failure)
            continue
        batch.pools.append(EnrichedPool(pool=pool, details=result))

    if batch.failures:
        logger.info(f"Enriched {len(batch.pools)}/{len(pools)} pools; dropped {len(batch.failures)}")
    return batch
