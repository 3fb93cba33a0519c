"""
Bounded-concurrency worker pool for a fixed list of async jobs.

A fixed set of workers pulls (index, item) pairs from one shared iterator,
so a slot freed by a fast item is refilled at once instead of waiting for a
whole batch. Results land at their item's index, whatever the completion
order. A failing item is recorded as a Rejected marker and never stops the
other workers.

Usage:
    results = await process(engines, explore_engine, concurrency=4)
    for engine, result in zip(engines, results):
        if is_rejected(result):
            ...
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from vaultpass.errors import InvalidArgument

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 6
STATUS_REJECTED = "rejected"

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Rejected:
    """Stand-in result for an item whose job raised."""

    reason: BaseException
    status: str = STATUS_REJECTED


def is_rejected(result: Any) -> bool:
    return isinstance(result, Rejected)


async def process(
    items: Sequence[T],
    fn: Callable[[T, int], Awaitable[U]],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[U | Rejected]:
    """Run ``fn(item, index)`` over ``items`` with at most ``concurrency`` in flight.

    Args:
        items: A list or tuple of work items.
        fn: Coroutine function called with the item and its original index.
        concurrency: Maximum simultaneous calls (positive int).

    Returns:
        One entry per item, in item order: the job's return value, or a
        Rejected marker carrying the raised exception.

    Raises:
        InvalidArgument: before any work starts, if an argument is unusable.
    """
    if not isinstance(items, (list, tuple)):
        raise InvalidArgument("items must be a list or tuple")
    if not callable(fn):
        raise InvalidArgument("fn must be callable")
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency <= 0:
        raise InvalidArgument("concurrency must be a positive integer")

    if not items:
        return []

    workers = min(concurrency, len(items))
    pending = enumerate(items)
    results: list[Any] = [None] * len(items)

    async def worker() -> None:
        # The shared iterator is only advanced between awaits, so no two
        # workers ever receive the same index.
        for index, item in pending:
            try:
                results[index] = await fn(item, index)
            except Exception as e:
                logger.debug("Pool item %d rejected: %s", index, e)
                results[index] = Rejected(reason=e)

    await asyncio.gather(*(worker() for _ in range(workers)))
    return results
