"""
Utility: bounded_map

Run an async task over a list of items with a fixed number of workers while
keeping results in input order.

Usage:
    from valueline.utils.worker_pool import bounded_map
    results = await bounded_map(match_refs, 4, fetch_one)
    # results[i] is None where fetch_one raised for match_refs[i]
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def resolve(value: Union[R, Awaitable[R]]) -> R:
    """Await ``value`` if it is awaitable, so sync and async fetchers mix."""
    if inspect.isawaitable(value):
        return await value
    return value


async def bounded_map(
    items: Sequence[T],
    limit: int,
    task: Callable[[T, int], Any],
    on_error: Optional[Callable[[T, int, Exception], None]] = None,
) -> List[Optional[R]]:
    """
    Apply ``task`` to every item with at most ``limit`` tasks in flight.

    Each worker claims the next index from a shared cursor, awaits the task
    for that item and writes the result into a pre-sized list at the claimed
    index, so ordering is preserved regardless of completion order.  Writes
    never overlap and everything runs on one event loop, so no lock is needed.

    A task that raises leaves ``None`` at its index and does not cancel the
    other workers.

    Args:
        items: Inputs, in the order results should come back.
        limit: Maximum concurrent tasks (clamped to ``len(items)``).
        task: ``task(item, index)``; may return a value or an awaitable.
        on_error: Optional callback invoked with ``(item, index, exc)``.

    Returns:
        One entry per item; ``None`` where the task failed.
    """
    results: List[Optional[R]] = [None] * len(items)
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            idx = cursor
            cursor += 1
            try:
                results[idx] = await resolve(task(items[idx], idx))
            except Exception as exc:
                if on_error is not None:
                    on_error(items[idx], idx, exc)
                else:
                    logger.debug("Task %d failed: %s", idx, exc)

    n_workers = min(max(limit, 1), len(items))
    await asyncio.gather(*(worker() for _ in range(n_workers)))
    return results
