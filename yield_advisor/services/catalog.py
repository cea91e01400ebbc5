from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from yield_advisor.clients.base import DeFiDataProvider
from yield_advisor.errors import InvalidInput
from yield_advisor.models import Pool
from yield_advisor.utils.tasks import gather_bounded, raise_unexpected

logger = logging.getLogger(__name__)


async def fetch_pool_catalog(
    provider: DeFiDataProvider,
    tokens: Sequence[str],
    *,
    dex: Sequence[str] | None = None,
    page: int = 1,
    limit: int = 10,
    concurrency: int = 10,
) -> List[Pool]:
    """Query pools for every token concurrently and concatenate the listings.

    Order is input token order, then upstream order. A token whose query
    fails contributes nothing; only an empty token list is fatal.
    """
    if not tokens:
        raise InvalidInput("At least one token address is required")
    if any(not isinstance(t, str) or not t.strip() for t in tokens):
        raise InvalidInput("Token addresses must be non-empty strings")
    if page < 1 or limit < 1:
        raise InvalidInput("page and limit must be >= 1")

    results = await gather_bounded(
        (provider.get_pools_by_token(t, page=page, limit=limit, dex=dex) for t in tokens),
        concurrency,
    )
    raise_unexpected(results)

    merged: List[Pool] = []
    failed = 0
    for token, result in zip(tokens, results):
        if isinstance(result, BaseException):
            failed += 1
            logger.warning(f"Pool listing failed for token {token}: {result}")
            continue
        merged.extend(result)
    logger.info(f"Pool catalog: {len(merged)} pools from {len(tokens)} tokens ({failed} failed)")
    return merged


def dedupe_pools(pools: Sequence[Pool]) -> List[Pool]:
    """Keep the first pool seen for each address, preserving order."""
    seen: Dict[str, Pool] = {}
    for pool in pools:
        if pool.address not in seen:
            seen[pool.address] = pool
    return list(seen.values())
