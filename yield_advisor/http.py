from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class HttpClient:
    def __init__(self, timeout: float = 15.0, retries: int = 3, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._retries = retries

    def _retrying(self) -> AsyncRetrying:
        # 4xx answers are final; only transport failures and 5xx are retried
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception(_is_transient),
        )

    async def get(self, url: str, params: Optional[Any] = None, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        async for attempt in self._retrying():
            with attempt:
                logger.debug(f"HTTP GET {url} params={params}")
                resp = await self._client.get(url, params=params, headers=headers)
                resp.raise_for_status()
        return resp

    async def post(self, url: str, json: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        logger.debug(f"HTTP POST {url} json_keys={list(json.keys()) if json else None}")
        resp = await self._client.post(url, json=json, headers=headers)
        resp.raise_for_status()
        return resp

    async def aclose(self) -> None:
        await self._client.aclose()
