#!/usr/bin/env python3
"""
Tests for the fixed-batch baseline, the simulated workload and small helpers.
"""
import asyncio
import time

import pytest

from slidepool import Outcome, WindowScheduler, split_outcomes
from slidepool.utils.async_helpers import SimulatedFailure, run_in_batches, simulated_operation, task_delay
from slidepool.utils.helpers import chunked, format_duration, generate_uid


def test_batches_wait_for_slowest_member():
    """Nothing from batch 2 starts before every member of batch 1 has finished."""
    events = []

    async def op(index):
        events.append(("start", index))
        await asyncio.sleep(0.03 if index == 0 else 0.001)
        events.append(("end", index))
        return index

    results = asyncio.run(run_in_batches(range(6), 3, op))

    assert results == list(range(6))
    first_batch_end = max(events.index(("end", i)) for i in range(3))
    second_batch_start = min(events.index(("start", i)) for i in range(3, 6))
    assert first_batch_end < second_batch_start


def test_batches_propagate_first_error():
    async def op(index):
        if index == 4:
            raise ValueError("bad task")
        return index

    with pytest.raises(ValueError, match="bad task"):
        asyncio.run(run_in_batches(range(8), 3, op))


def test_batch_size_must_be_positive():
    async def op(index):
        return index

    with pytest.raises(ValueError):
        asyncio.run(run_in_batches([1], 0, op))


def test_sliding_window_beats_fixed_batches_on_uneven_latency():
    # Each batch of two holds one slow task, so batching pays the slow latency four times
    delays = [0.2, 0.01, 0.01, 0.2, 0.2, 0.01, 0.01, 0.2]

    async def op(index):
        await asyncio.sleep(delays[index])
        return index

    async def timed(coro):
        start = time.perf_counter()
        result = await coro
        return result, time.perf_counter() - start

    async def scenario():
        windowed = await timed(WindowScheduler(2).run(range(8), op))
        batched = await timed(run_in_batches(range(8), 2, op))
        return windowed, batched

    (windowed, window_time), (batched, batch_time) = asyncio.run(scenario())

    assert windowed == batched == list(range(8))
    assert window_time < batch_time * 0.75
    print(f"✓ Sliding window {window_time:.3f}s vs batches {batch_time:.3f}s")


def test_simulated_operation_returns_task():
    op = simulated_operation(0, 0.005, seed=3)
    assert asyncio.run(op("job")) == "job"


def test_simulated_delay_is_stable_per_seed():
    first = [task_delay(i, 0.1, 0.5, seed=11) for i in range(10)]
    second = [task_delay(i, 0.1, 0.5, seed=11) for i in range(10)]

    assert first == second
    assert all(0.1 <= d <= 0.5 for d in first)
    assert first != [task_delay(i, 0.1, 0.5, seed=12) for i in range(10)]


def test_simulated_failures():
    op = simulated_operation(0, 0, failure_rate=1.0, seed=1)

    with pytest.raises(SimulatedFailure) as exc_info:
        asyncio.run(op(5))
    assert exc_info.value.task == 5

    never = simulated_operation(0, 0, failure_rate=0.0)
    assert asyncio.run(never(5)) == 5


@pytest.mark.parametrize("kwargs", [
    {"min_delay": -1, "max_delay": 1},
    {"min_delay": 2, "max_delay": 1},
    {"min_delay": 0, "max_delay": 1, "failure_rate": 1.5},
])
def test_simulated_operation_rejects_bad_arguments(kwargs):
    with pytest.raises(ValueError):
        simulated_operation(**kwargs)


def test_outcome_helpers():
    ok = Outcome.success(0, "value")
    bad = Outcome.failure(1, KeyError("missing"))

    assert ok.ok and not bad.ok
    assert ok.unwrap() == "value"
    with pytest.raises(KeyError):
        bad.unwrap()
    assert ok.to_dict() == {'index': 0, 'ok': True, 'value': 'value', 'error': None}
    assert bad.to_dict()['error'] == "KeyError('missing')"
    assert split_outcomes([ok, bad]) == (["value"], [bad])


def test_helpers():
    assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunked([], 3) == []
    assert format_duration(0.25) == "250ms"
    assert format_duration(2.5) == "2.50s"
    assert format_duration(125) == "2m 5s"
    assert format_duration(7260) == "2h 1m"

    uid = generate_uid("RUN-")
    assert uid.startswith("RUN-")
    assert len(uid) == 12


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
