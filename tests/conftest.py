from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from yield_advisor.clients.base import DeFiDataProvider, PortfolioProvider
from yield_advisor.errors import MalformedPayload, UpstreamUnavailable
from yield_advisor.models import LiquidityDetails, Pool, PortfolioSnapshot, TokenInfo

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def make_pool(address: str, dex: str = "Raydium", a: str = "SOL", b: str = "USDC") -> Pool:
    return Pool(
        address=address,
        dex=dex,
        token_a=TokenInfo(address=f"{a}-mint", symbol=a, decimals=9),
        token_b=TokenInfo(address=f"{b}-mint", symbol=b, decimals=6),
    )


def make_details(tvl: float, apy: float, volume: float = 0.0, fee: float = 0.0) -> LiquidityDetails:
    return LiquidityDetails(tvl=tvl, apy=apy, volume_24h=volume, fee_24h=fee)


class FakeDeFiProvider(DeFiDataProvider):
    """In-memory provider; failures are configured per token or per pool."""

    def __init__(
        self,
        pools_by_token: Optional[Dict[str, List[Pool]]] = None,
        details: Optional[Dict[str, LiquidityDetails]] = None,
        failing_tokens: Sequence[str] = (),
        delays: Optional[Dict[str, float]] = None,
        pools_by_pair: Optional[Dict[Tuple[str, str], List[Pool]]] = None,
        top_pools: Optional[List[Pool]] = None,
    ):
        self.pools_by_token = pools_by_token or {}
        self.details = details or {}
        self.failing_tokens = set(failing_tokens)
        self.delays = delays or {}
        self.pools_by_pair = pools_by_pair or {}
        self.top_pools = top_pools or []
        self.token_calls: List[str] = []
        self.detail_calls: List[str] = []
        self.details_done: List[str] = []
        self.listing_args: List[dict] = []
        self.pair_args: List[dict] = []
        self.top_args: List[dict] = []
        self.details_in_flight = 0
        self.peak_details_in_flight = 0

    async def get_pools_by_token(self, token, page=1, limit=10, dex=None):
        self.token_calls.append(token)
        self.listing_args.append({"token": token, "page": page, "limit": limit, "dex": dex})
        await asyncio.sleep(self.delays.get(token, 0))
        if token in self.failing_tokens:
            raise UpstreamUnavailable(f"listing for {token} failed")
        return list(self.pools_by_token.get(token, []))

    async def get_pools_by_pair(self, token_a, token_b, page=1, limit=10, dex=None):
        self.pair_args.append({"pair": (token_a, token_b), "page": page, "limit": limit, "dex": dex})
        return list(self.pools_by_pair.get((token_a, token_b), []))

    async def get_top_performing_pools(self, limit=10, sort_by="apy"):
        self.top_args.append({"limit": limit, "sort_by": sort_by})
        return list(self.top_pools[:limit])

    async def get_liquidity_details(self, pool_address):
        self.detail_calls.append(pool_address)
        self.details_in_flight += 1
        self.peak_details_in_flight = max(self.peak_details_in_flight, self.details_in_flight)
        try:
            await asyncio.sleep(self.delays.get(pool_address, 0))
        finally:
            self.details_in_flight -= 1
        self.details_done.append(pool_address)
        if pool_address not in self.details:
            raise MalformedPayload(f"No liquidity details for pool {pool_address}")
        return self.details[pool_address]

    async def get_pool_by_address(self, pool_address):
        for pools in self.pools_by_token.values():
            for pool in pools:
                if pool.address == pool_address:
                    return pool
        raise MalformedPayload(f"Pool {pool_address} not found")


class FakePortfolioProvider(PortfolioProvider):
    def __init__(self, snapshot: Optional[PortfolioSnapshot] = None, error: Optional[Exception] = None):
        self.snapshot = snapshot or PortfolioSnapshot()
        self.error = error
        self.calls: List[str] = []

    async def get_portfolio(self, wallet_address):
        self.calls.append(wallet_address)
        if self.error is not None:
            raise self.error
        return self.snapshot


@pytest.fixture
def wallet_address() -> str:
    return WALLET
