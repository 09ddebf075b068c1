"""
Bounded-Concurrency Dispatch for Synthesis Calls.

A play request turns into one synthesis call per chunk. Firing them all
at once would hammer the backend; firing them one by one would make the
learner wait for the sum of all latencies. The dispatcher runs at most
`limit` calls at a time and returns results in input order.

Architecture:
    A fixed pool of min(limit, len(items)) worker tasks share an index
    counter. Each worker claims the next unclaimed index, awaits the
    mapper and stores the result at that index. All mutation happens on
    the event loop thread between awaits, so no lock is needed.

Failure Semantics:
    The first mapper failure propagates unchanged. The other workers are
    cancelled and partial results are discarded; retry policy belongs to
    the caller (see services/playback.py).

Usage:
    results = await map_with_concurrency(chunks, 10, synthesize_chunk)

    dispatcher = BoundedDispatcher(limit=4)
    results = await dispatcher.map(chunks, synthesize_chunk)
    print(dispatcher.stats().peak_active)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from tutor_tts.core.logging import debug, get_logger, verbose
from tutor_tts.utils.timeit import timeit

_LOG = get_logger("tutor-tts.dispatcher")

T = TypeVar("T")
R = TypeVar("R")

Mapper = Callable[[T, int], Awaitable[R]]


async def map_with_concurrency(
    items: Sequence[T],
    limit: int,
    mapper: Mapper,
) -> List[R]:
    """
    Apply an async mapper to items with at most `limit` calls in flight.

    Args:
        items: Ordered inputs.
        limit: Maximum concurrent mapper invocations (>= 1).
        mapper: Async callable taking (item, index).

    Returns:
        Results where results[i] belongs to items[i].

    Raises:
        ValueError: If limit < 1.
        Exception: The first exception raised by the mapper.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")

    items = list(items)
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(items):
            current = next_index
            next_index += 1
            results[current] = await mapper(items[current], current)

    workers = [asyncio.ensure_future(worker()) for _ in range(min(limit, len(items)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for w in workers:
            w.cancel()
        # Let cancelled workers unwind before the error leaves this frame
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    return results  # type: ignore[return-value]


@dataclass
class DispatchStats:
    """Statistics for a BoundedDispatcher."""
    limit: int
    current_active: int
    peak_active: int
    total_processed: int
    total_failed: int


class BoundedDispatcher:
    """
    map_with_concurrency with bookkeeping.

    Tracks how many mapper calls are in flight, the peak reached and
    processed/failed totals across every map() call on this instance.
    """

    def __init__(self, limit: int = 10):
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        self.limit = limit
        self._active = 0
        self._peak = 0
        self._total_processed = 0
        self._total_failed = 0

    @property
    def active_count(self) -> int:
        """Mapper calls currently in flight."""
        return self._active

    def stats(self) -> DispatchStats:
        return DispatchStats(
            limit=self.limit,
            current_active=self._active,
            peak_active=self._peak,
            total_processed=self._total_processed,
            total_failed=self._total_failed,
        )

    async def map(self, items: Sequence[T], mapper: Mapper) -> List[R]:
        """Run mapper over items, at most self.limit at a time, results in input order."""

        async def tracked(item: T, index: int) -> R:
            self._active += 1
            self._peak = max(self._peak, self._active)
            debug(_LOG, "dispatch_item_start", index=index, active=self._active)
            try:
                result = await mapper(item, index)
            except Exception:
                self._total_failed += 1
                raise
            finally:
                self._active -= 1
            self._total_processed += 1
            return result

        with timeit("dispatch") as t:
            results = await map_with_concurrency(items, self.limit, tracked)

        verbose(_LOG, "dispatched", items=len(results), limit=self.limit, peak=self._peak, seconds=round(t.seconds, 4))
        return results
