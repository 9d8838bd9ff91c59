"""Bounded-concurrency helpers for async fan-out."""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def gather_in_batches(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    batch_size: int,
) -> list[R]:
    """Apply *func* to every item, at most *batch_size* at a time.

    Items are split into consecutive chunks; each chunk runs concurrently
    with ``asyncio.gather`` and the next chunk starts only once the previous
    one has fully resolved.  Results keep the input order.

    Usage::

        pages = await gather_in_batches(urls, audit_url, batch_size=4)
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    pending = list(items)
    results: list[R] = []
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        logger.debug(
            "Running batch %d-%d of %d", start + 1, start + len(batch), len(pending),
        )
        results.extend(await asyncio.gather(*(func(item) for item in batch)))
    return results
