from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

import httpx
from pydantic import ValidationError

from yield_advisor.clients.base import DeFiDataProvider, PortfolioProvider
from yield_advisor.config import Settings, get_settings
from yield_advisor.errors import MalformedPayload, UpstreamUnavailable
from yield_advisor.http import HttpClient
from yield_advisor.models import LiquidityDetails, Pool, PortfolioHolding, PortfolioSnapshot

logger = logging.getLogger(__name__)


async def _get_json(http: HttpClient, url: str, params: Any, headers: Dict[str, str]) -> Dict[str, Any]:
    try:
        resp = await http.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        raise UpstreamUnavailable(f"GET {url} failed: {e}") from e
    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedPayload(f"GET {url} returned non-JSON body") from e
    if not isinstance(data, dict):
        raise MalformedPayload(f"GET {url} returned {type(data).__name__}, expected an object")
    # Shyft wraps most answers in {"success", "result", "message"}
    if data.get("success") is False:
        raise UpstreamUnavailable(data.get("message") or f"GET {url} reported failure")
    result = data.get("result")
    if isinstance(result, dict):
        return result
    return data


def _pools_from_listing(data: Dict[str, Any], what: str) -> List[Pool]:
    """Validate a `{"pools": [...]}` listing, skipping entries that do not parse."""
    raw = data.get("pools") or []
    if not isinstance(raw, list):
        raise MalformedPayload(f"Pools listing for {what} is not a list")
    pools: List[Pool] = []
    for item in raw:
        try:
            pools.append(Pool.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed pool in listing for {what}: {e.error_count()} error(s)")
    return pools


class ShyftDeFiClient(DeFiDataProvider):
    """Shyft DeFi REST API.

    Docs: https://docs.shyft.to/solana-apis/defi
    """

    def __init__(self, http: HttpClient, settings: Settings | None = None):
        self.http = http
        self.settings = settings or get_settings()

    def _url(self, path: str) -> str:
        return f"{self.settings.SHYFT_DEFI_BASE_URL.rstrip('/')}/{path}"

    async def get_pools_by_token(
        self,
        token: str,
        page: int = 1,
        limit: int = 10,
        dex: Sequence[str] | None = None,
    ) -> List[Pool]:
        params: List[Tuple[str, Any]] = [("token", token), ("page", page), ("limit", limit)]
        for name in dex or []:
            params.append(("dex", name))
        data = await _get_json(self.http, self._url("pools/get_by_token"), params, self.settings.shyft_headers())
        pools = _pools_from_listing(data, f"token {token}")
        logger.debug(f"Token {token}: {len(pools)} pools (page={page}, limit={limit})")
        return pools

    async def get_pools_by_pair(
        self,
        token_a: str,
        token_b: str,
        page: int = 1,
        limit: int = 10,
        dex: Sequence[str] | None = None,
    ) -> List[Pool]:
        params: List[Tuple[str, Any]] = [("tokenA", token_a), ("tokenB", token_b), ("page", page), ("limit", limit)]
        for name in dex or []:
            params.append(("dex", name))
        data = await _get_json(self.http, self._url("pools/get_by_pair"), params, self.settings.shyft_headers())
        return _pools_from_listing(data, f"pair {token_a}/{token_b}")

    async def get_top_performing_pools(self, limit: int = 10, sort_by: str = "apy") -> List[Pool]:
        data = await _get_json(
            self.http,
            self._url("pools/top_performing"),
            {"limit": limit, "sort_by": sort_by},
            self.settings.shyft_headers(),
        )
        return _pools_from_listing(data, "top performing pools")

    async def get_liquidity_details(self, pool_address: str) -> LiquidityDetails:
        data = await _get_json(
            self.http,
            self._url("pools/get_liquidity_details"),
            {"address": pool_address},
            self.settings.shyft_headers(),
        )
        raw = data.get("liquidity_details")
        if raw is None:
            raise MalformedPayload(f"No liquidity details for pool {pool_address}")
        try:
            return LiquidityDetails.model_validate(raw)
        except ValidationError as e:
            raise MalformedPayload(f"Invalid liquidity details for pool {pool_address}: {e}") from e

    async def get_pool_by_address(self, pool_address: str) -> Pool:
        data = await _get_json(
            self.http,
            self._url("pools/get_by_address"),
            {"address": pool_address},
            self.settings.shyft_headers(),
        )
        raw = data.get("pool")
        if raw is None:
            raise MalformedPayload(f"Pool {pool_address} not found")
        try:
            return Pool.model_validate(raw)
        except ValidationError as e:
            raise MalformedPayload(f"Invalid pool record for {pool_address}: {e}") from e


def _holding_from_payload(token: Dict[str, Any]) -> PortfolioHolding:
    info = token.get("info") if isinstance(token.get("info"), dict) else {}
    return PortfolioHolding.model_validate(
        {
            "symbol": token.get("symbol") or info.get("symbol"),
            "mint": token.get("address") or token.get("mint"),
            "balance": token.get("balance") or 0.0,
            "value_usd": token.get("value_usd", token.get("valueUsd")),
        }
    )


class ShyftWalletClient(PortfolioProvider):
    """Shyft wallet API (`/wallet/get_portfolio`)."""

    def __init__(self, http: HttpClient, settings: Settings | None = None, network: str | None = None):
        self.http = http
        self.settings = settings or get_settings()
        self.network = network or self.settings.SOLANA_NETWORK

    async def get_portfolio(self, wallet_address: str) -> PortfolioSnapshot:
        url = f"{self.settings.SHYFT_WALLET_BASE_URL.rstrip('/')}/get_portfolio"
        data = await _get_json(
            self.http,
            url,
            {"network": self.network, "wallet": wallet_address},
            self.settings.shyft_headers(),
        )
        if "sol_balance" not in data:
            raise MalformedPayload(f"Portfolio for {wallet_address} has no sol_balance")
        try:
            return PortfolioSnapshot(
                sol_balance=float(data["sol_balance"] or 0.0),
                tokens=[_holding_from_payload(t) for t in data.get("tokens") or [] if isinstance(t, dict)],
                nft_count=len(data.get("nfts") or []),
            )
        except (TypeError, ValueError) as e:
            raise MalformedPayload(f"Invalid portfolio payload for {wallet_address}: {e}") from e
