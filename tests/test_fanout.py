from __future__ import annotations

import asyncio
import random

import pytest

from bulk_gateway import InputValidationError, bounded_map


class Tracker:
    def __init__(self):
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = []

    async def __call__(self, item):
        self.started.append(item)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        # finish out of order on purpose
        await asyncio.sleep(random.uniform(0, 0.005))
        self.in_flight -= 1
        return item * 10


async def test_results_follow_input_order():
    tracker = Tracker()

    result = await bounded_map(range(20), tracker, concurrency=5)

    assert result == [i * 10 for i in range(20)]
    assert tracker.max_in_flight <= 5


async def test_empty_input_schedules_nothing():
    tracker = Tracker()

    assert await bounded_map([], tracker) == []
    assert tracker.started == []


async def test_concurrency_one_is_sequential():
    tracker = Tracker()

    await bounded_map(range(6), tracker, concurrency=1)

    assert tracker.max_in_flight == 1
    assert tracker.started == list(range(6))


async def test_concurrency_above_batch_size_runs_all_at_once():
    tracker = Tracker()

    await bounded_map(range(4), tracker, concurrency=10)

    assert tracker.max_in_flight == 4


async def test_failure_values_do_not_stop_the_batch():
    async def flaky(item):
        if item % 2:
            return {"error": item}
        return {"ok": item}

    result = await bounded_map(range(5), flaky)

    assert result == [{"ok": 0}, {"error": 1}, {"ok": 2}, {"error": 3}, {"ok": 4}]


async def test_raised_exception_propagates():
    async def boom(item):
        if item == 3:
            raise RuntimeError("unreachable")
        return item

    with pytest.raises(RuntimeError):
        await bounded_map(range(5), boom)


async def test_raised_exception_cancels_the_rest():
    tracker = Tracker()
    finished = []

    async def fail_first(item):
        if item == 0:
            raise RuntimeError("unreachable")
        await tracker(item)
        await asyncio.sleep(0.05)
        finished.append(item)

    with pytest.raises(RuntimeError):
        await bounded_map(range(20), fail_first, concurrency=5)
    await asyncio.sleep(0.1)

    assert finished == []
    assert len(tracker.started) < 19


@pytest.mark.parametrize("concurrency", [0, -1])
async def test_invalid_concurrency(concurrency):
    with pytest.raises(InputValidationError):
        await bounded_map([1], Tracker(), concurrency=concurrency)
