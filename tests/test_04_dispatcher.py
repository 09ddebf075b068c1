"""Tests for bounded-concurrency dispatch."""
from __future__ import annotations

import asyncio

import pytest

from tutor_tts.tts.dispatcher import BoundedDispatcher, map_with_concurrency


class TestMapWithConcurrency:
    """Order, bound and failure semantics of map_with_concurrency."""

    @pytest.mark.parametrize("limit", [1, 2, 3, 10])
    def test_results_in_input_order_with_reverse_delays(self, limit):
        """Later items finish first; results still line up with inputs."""
        items = list(range(8))

        async def mapper(item, index):
            await asyncio.sleep(0.002 * (len(items) - index))
            return item * 10

        results = asyncio.run(map_with_concurrency(items, limit, mapper))
        assert results == [i * 10 for i in items]

    def test_limit_one_is_sequential(self):
        events = []

        async def mapper(item, index):
            events.append(("start", index))
            await asyncio.sleep(0.001)
            events.append(("end", index))
            return item.upper()

        results = asyncio.run(map_with_concurrency(["a", "b", "c"], 1, mapper))

        assert results == ["A", "B", "C"]
        assert events == [
            ("start", 0), ("end", 0),
            ("start", 1), ("end", 1),
            ("start", 2), ("end", 2),
        ]

    def test_index_passed_to_mapper(self):
        async def mapper(item, index):
            return (item, index)

        results = asyncio.run(map_with_concurrency(["x", "y"], 5, mapper))
        assert results == [("x", 0), ("y", 1)]

    def test_in_flight_never_exceeds_limit(self):
        active = 0
        peak = 0

        async def mapper(item, index):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            return item

        asyncio.run(map_with_concurrency(list(range(20)), 4, mapper))
        assert peak == 4

    def test_empty_items_never_call_mapper(self):
        calls = []

        async def mapper(item, index):
            calls.append(item)
            return item

        assert asyncio.run(map_with_concurrency([], 3, mapper)) == []
        assert calls == []

    @pytest.mark.parametrize("limit", [0, -1, True, 2.5])
    def test_invalid_limit(self, limit):
        async def mapper(item, index):
            return item

        with pytest.raises(ValueError):
            asyncio.run(map_with_concurrency([1], limit, mapper))

    def test_first_failure_propagates_and_cancels_others(self):
        finished = []

        async def mapper(item, index):
            if index == 1:
                await asyncio.sleep(0.001)
                raise RuntimeError("chunk 1 failed")
            await asyncio.sleep(0.2)
            finished.append(index)
            return item

        async def scenario():
            with pytest.raises(RuntimeError, match="chunk 1 failed"):
                await map_with_concurrency(list(range(5)), 3, mapper)
            # Give cancelled workers a chance to (wrongly) finish
            await asyncio.sleep(0.3)

        asyncio.run(scenario())
        assert finished == []


class TestBoundedDispatcher:
    """Bookkeeping on top of map_with_concurrency."""

    def test_stats_after_map(self):
        dispatcher = BoundedDispatcher(limit=3)

        async def mapper(item, index):
            await asyncio.sleep(0.002)
            return item

        results = asyncio.run(dispatcher.map(list(range(9)), mapper))
        stats = dispatcher.stats()

        assert results == list(range(9))
        assert stats.limit == 3
        assert stats.peak_active == 3
        assert stats.current_active == 0
        assert stats.total_processed == 9
        assert stats.total_failed == 0
        assert dispatcher.active_count == 0

    def test_failure_counted(self):
        dispatcher = BoundedDispatcher(limit=1)

        async def mapper(item, index):
            if item == 2:
                raise ValueError("bad item")
            return item

        with pytest.raises(ValueError, match="bad item"):
            asyncio.run(dispatcher.map([1, 2, 3], mapper))

        stats = dispatcher.stats()
        assert stats.total_processed == 1
        assert stats.total_failed == 1
        assert stats.current_active == 0

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            BoundedDispatcher(limit=0)
