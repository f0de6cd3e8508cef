# src/slidepool/utils/async_helpers.py
import asyncio
import random
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from .config import DEFAULT_MAX_DELAY, DEFAULT_MIN_DELAY
from .helpers import chunked

T = TypeVar('T')
R = TypeVar('R')


class SimulatedFailure(Exception):
    """Raised by a simulated operation when its task is drawn to fail."""

    def __init__(self, task: Any):
        super().__init__(f"Simulated failure for task {task!r}")
        self.task = task


async def run_in_batches(
    tasks: Iterable[T],
    size: int,
    operation: Callable[[T], Awaitable[R]]
) -> list[R]:
    """
    Execute tasks in fixed groups of `size`, waiting for each group to finish.

    Baseline for comparison with the sliding window: a whole batch waits for its
    slowest member before the next batch starts.
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")

    results: list[R] = []
    for batch in chunked(list(tasks), size):
        results.extend(await asyncio.gather(*(operation(task) for task in batch)))
    return results


def task_delay(task: Any, min_delay: float, max_delay: float, seed: int | None = None) -> float:
    """Pseudo-random latency for a task; stable for a given seed and task."""
    rng = random.Random(f"{seed}:{task!r}") if seed is not None else random
    return rng.uniform(min_delay, max_delay)


def simulated_operation(
    min_delay: float = DEFAULT_MIN_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    failure_rate: float = 0.0,
    seed: int | None = None
) -> Callable[[Any], Awaitable[Any]]:
    """
    Build an async operation that sleeps a random latency and returns its task.

    Args:
        min_delay: Lower bound of the latency in seconds
        max_delay: Upper bound of the latency in seconds
        failure_rate: Probability in [0, 1] that a task raises SimulatedFailure
        seed: Makes delays and failures reproducible per task

    Returns:
        Async callable suitable as a scheduler operation
    """
    if min_delay < 0 or max_delay < min_delay:
        raise ValueError(f"Invalid delay range: {min_delay}..{max_delay}")
    if not 0.0 <= failure_rate <= 1.0:
        raise ValueError(f"Failure rate must be between 0 and 1, got {failure_rate}")

    async def operation(task):
        await asyncio.sleep(task_delay(task, min_delay, max_delay, seed))
        roll = random.Random(f"fail:{seed}:{task!r}").random() if seed is not None else random.random()
        if roll < failure_rate:
            raise SimulatedFailure(task)
        return task

    return operation
