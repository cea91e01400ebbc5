from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, List, TypeVar, Union

from yield_advisor.errors import AdvisorError

T = TypeVar("T")


async def gather_bounded(aws: Iterable[Awaitable[T]], limit: int) -> List[Union[T, BaseException]]:
    """Run awaitables with at most `limit` in flight; join on all of them.

    Results come back in input order. Failures are returned in their slot
    instead of being raised.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(aw: Awaitable[T]) -> T:
        async with semaphore:
            return await aw

    return await asyncio.gather(*(_run(aw) for aw in aws), return_exceptions=True)


def raise_unexpected(results: Iterable[object]) -> None:
    """Re-raise the first failure that is not an `AdvisorError`.

    Advisor errors are data for the caller to absorb; anything else is a bug.
    """
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, AdvisorError):
            raise result
