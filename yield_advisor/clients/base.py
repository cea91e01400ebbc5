from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from yield_advisor.models import LiquidityDetails, Pool, PortfolioSnapshot


class DeFiDataProvider(ABC):
    """Source of pool listings and per-pool liquidity metrics.

    Implementations map raw upstream payloads to typed models and raise
    `UpstreamUnavailable` or `MalformedPayload` on failure.
    """

    @abstractmethod
    async def get_pools_by_token(
        self,
        token: str,
        page: int = 1,
        limit: int = 10,
        dex: Sequence[str] | None = None,
    ) -> List[Pool]:
        """Return the pools that reference `token`, in upstream order."""
        ...

    @abstractmethod
    async def get_pools_by_pair(
        self,
        token_a: str,
        token_b: str,
        page: int = 1,
        limit: int = 10,
        dex: Sequence[str] | None = None,
    ) -> List[Pool]:
        """Return the pools trading `token_a` against `token_b`."""
        ...

    @abstractmethod
    async def get_top_performing_pools(self, limit: int = 10, sort_by: str = "apy") -> List[Pool]:
        ...

    @abstractmethod
    async def get_liquidity_details(self, pool_address: str) -> LiquidityDetails:
        ...

    @abstractmethod
    async def get_pool_by_address(self, pool_address: str) -> Pool:
        ...


class PortfolioProvider(ABC):
    """Source of wallet holdings."""

    @abstractmethod
    async def get_portfolio(self, wallet_address: str) -> PortfolioSnapshot:
        ...
