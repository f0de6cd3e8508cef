# src/slidepool/core/scheduler.py
import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, TypeVar

from loguru import logger

from .errors import InvalidConfiguration, OperationError, SchedulerError
from .outcome import Outcome
from ..utils.config import DEFAULT_LIMIT
from ..utils.helpers import generate_uid

T = TypeVar('T')
R = TypeVar('R')

SettleCallback = Callable[[Outcome, int, int], None]

# Marks a result slot that has not been written yet
_PENDING = object()


class FailurePolicy(str, Enum):
    """What a run does when a task's operation fails."""
    FAST_FAIL = "fast_fail"
    COLLECT_ALL = "collect_all"


@dataclass
class RunStats:
    """Counters gathered while a run executes."""
    run_id: str
    total: int
    limit: int
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    peak_in_flight: int = 0
    elapsed: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary."""
        return asdict(self)


def _coerce_policy(policy: FailurePolicy | str) -> FailurePolicy:
    try:
        return FailurePolicy(policy)
    except ValueError as e:
        raise InvalidConfiguration(f"Unknown failure policy: {policy!r}") from e


def _check_limit(limit: Any) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidConfiguration(f"Concurrency limit must be an integer, got {type(limit).__name__}")
    if limit < 1:
        raise InvalidConfiguration(f"Concurrency limit must be at least 1, got {limit}")
    return limit


def _materialize(tasks: Any) -> list:
    if isinstance(tasks, (str, bytes, bytearray)):
        raise InvalidConfiguration("Tasks must be a sequence of task descriptors, not a string")
    try:
        return list(tasks)
    except TypeError as e:
        raise InvalidConfiguration(f"Tasks must be iterable, got {type(tasks).__name__}") from e


class SchedulerRun:
    """
    State of a single bounded-concurrency run.

    A fixed set of worker slots pulls task indices from a shared cursor. Each slot
    awaits its operation, records the result at the claimed index and immediately
    claims the next one, so the window stays full until the tail. The overall
    outcome is a future resolved by whichever slot settles the last task (or the
    first failure under fast-fail).

    Claiming, storing and completion checks never await, which is what keeps
    indices unique on the single event-loop thread.
    """

    def __init__(
        self,
        tasks: Iterable[T],
        limit: int,
        operation: Callable[[T], Awaitable[R]],
        policy: FailurePolicy | str = FailurePolicy.FAST_FAIL,
        cancel_pending: bool = False,
        on_settle: SettleCallback | None = None
    ):
        """
        Validate configuration and prepare fresh run state.

        Args:
            tasks: Ordered task descriptors, materialized once
            limit: Maximum number of operations in flight (clamped to the task count)
            operation: Async callable invoked once per task
            policy: Fast-fail (raise on first failure) or collect-all (return outcomes)
            cancel_pending: Cancel other in-flight operations after a fast-fail
            on_settle: Called with (outcome, completed, total) after each settlement
        """
        requested = _check_limit(limit)
        self.policy = _coerce_policy(policy)
        if not callable(operation):
            raise InvalidConfiguration(f"Operation must be callable, got {type(operation).__name__}")
        if on_settle is not None and not callable(on_settle):
            raise InvalidConfiguration("on_settle must be callable")

        self.tasks = _materialize(tasks)
        self.operation = operation
        self.cancel_pending = cancel_pending
        self.on_settle = on_settle

        self.total = len(self.tasks)
        self.limit = min(requested, self.total)
        self.run_id = generate_uid("RUN-")

        self.cursor = 0  # next unclaimed index
        self.completed = 0
        self.in_flight = 0
        self.results: list[Any] = [_PENDING] * self.total
        self.stats = RunStats(run_id=self.run_id, total=self.total, limit=self.limit)

        self._slots: list[asyncio.Task] = []
        self._done: asyncio.Future | None = None
        self._started = False

    @property
    def settled(self) -> bool:
        return self._done is not None and self._done.done()

    async def execute(self) -> list:
        """
        Drive the run to completion.

        Returns:
            Values in input order (fast-fail) or Outcome records in input order (collect-all)

        Raises:
            OperationError: First task failure under fast-fail
            SchedulerError: The run was executed twice or a slot died unexpectedly
        """
        if self._started:
            raise SchedulerError(f"Run {self.run_id} has already been executed")
        self._started = True
        self._done = asyncio.get_running_loop().create_future()

        if self.total == 0:
            logger.debug(f"[{self.run_id}] no tasks, nothing to dispatch")
            self._done.set_result([])
            return []

        logger.info(
            f"[{self.run_id}] running {self.total} tasks with {self.limit} slots ({self.policy.value})"
        )
        started = time.perf_counter()

        for slot_id in range(self.limit):
            slot = asyncio.create_task(self._slot(slot_id), name=f"{self.run_id}-slot-{slot_id}")
            slot.add_done_callback(self._on_slot_done)
            self._slots.append(slot)

        try:
            results = await self._done
        except OperationError as e:
            raise e from e.error
        except asyncio.CancelledError:
            logger.warning(f"[{self.run_id}] cancelled by caller, stopping {len(self._slots)} slots")
            self._cancel_slots()
            raise
        finally:
            self.stats.elapsed = time.perf_counter() - started

        logger.info(
            f"[{self.run_id}] completed {self.completed}/{self.total} tasks in {self.stats.elapsed:.3f}s "
            f"(peak {self.stats.peak_in_flight} in flight, {self.stats.failed} failed)"
        )
        return results

    async def drain(self):
        """Wait for operations still running after the run settled."""
        if self._slots:
            await asyncio.gather(*self._slots, return_exceptions=True)

    def _claim(self) -> int | None:
        if self._done.done() or self.cursor >= self.total:
            return None
        index = self.cursor
        self.cursor += 1
        return index

    async def _slot(self, slot_id: int):
        while True:
            index = self._claim()
            if index is None:
                return

            self.in_flight += 1
            self.stats.dispatched += 1
            self.stats.peak_in_flight = max(self.stats.peak_in_flight, self.in_flight)
            logger.debug(f"[{self.run_id}] slot {slot_id} dispatched task {index} ({self.in_flight} in flight)")

            try:
                value = await self.operation(self.tasks[index])
            except Exception as e:
                outcome = Outcome.failure(index, e)
            else:
                outcome = Outcome.success(index, value)
            finally:
                self.in_flight -= 1

            self._settle(outcome)

    def _settle(self, outcome: Outcome):
        if self._done.done():
            logger.debug(f"[{self.run_id}] discarding late settlement of task {outcome.index}")
            return

        if outcome.ok:
            self.stats.succeeded += 1
        else:
            self.stats.failed += 1

        if not outcome.ok and self.policy is FailurePolicy.FAST_FAIL:
            index = outcome.index
            self._fail(OperationError(index, self.tasks[index], outcome.error))
            self._notify(outcome)
            return

        stored = outcome if self.policy is FailurePolicy.COLLECT_ALL else outcome.value
        self._store(outcome.index, stored)
        self.completed += 1
        self._notify(outcome)

        if self.completed == self.total and not self._done.done():
            self._done.set_result(list(self.results))

    def _store(self, index: int, value: Any):
        if self.results[index] is not _PENDING:
            raise SchedulerError(f"Result slot {index} written twice in run {self.run_id}")
        self.results[index] = value

    def _notify(self, outcome: Outcome):
        if self.on_settle is None:
            return
        try:
            self.on_settle(outcome, self.completed, self.total)
        except Exception as e:
            logger.error(f"[{self.run_id}] on_settle callback failed for task {outcome.index}: {e}")
            # A run that already failed keeps its original error
            self._fail(e)

    def _fail(self, error: BaseException):
        if self._done.done():
            return
        self._done.set_exception(error)
        logger.warning(f"[{self.run_id}] run failed: {error}")

        if self.cancel_pending:
            self._cancel_slots(exclude=asyncio.current_task())

    def _cancel_slots(self, exclude: asyncio.Task | None = None):
        cancelled = 0
        for slot in self._slots:
            if slot is not exclude and not slot.done():
                slot.cancel()
                cancelled += 1
        if cancelled:
            logger.debug(f"[{self.run_id}] cancelled {cancelled} in-flight slots")

    def _on_slot_done(self, slot: asyncio.Task):
        if slot.cancelled():
            if not self._done.done():
                self._fail(SchedulerError(f"Dispatch slot {slot.get_name()} was cancelled before the run settled"))
            return

        error = slot.exception()
        if error is not None:
            self._fail(error)


class WindowScheduler:
    """Reusable sliding-window configuration; every call to run() gets fresh state."""

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        policy: FailurePolicy | str = FailurePolicy.FAST_FAIL,
        cancel_pending: bool = False
    ):
        self.limit = _check_limit(limit)
        self.policy = _coerce_policy(policy)
        self.cancel_pending = cancel_pending
        self.last_run: SchedulerRun | None = None

    async def run(
        self,
        tasks: Iterable[T],
        operation: Callable[[T], Awaitable[R]],
        on_settle: SettleCallback | None = None
    ) -> list:
        """Run operation over tasks with at most `limit` operations in flight."""
        run = SchedulerRun(
            tasks,
            self.limit,
            operation,
            policy=self.policy,
            cancel_pending=self.cancel_pending,
            on_settle=on_settle
        )
        self.last_run = run
        return await run.execute()


async def run(
    tasks: Iterable[T],
    limit: int,
    operation: Callable[[T], Awaitable[R]],
    *,
    policy: FailurePolicy | str = FailurePolicy.FAST_FAIL,
    cancel_pending: bool = False,
    on_settle: SettleCallback | None = None
) -> list:
    """
    Execute operation over every task with bounded concurrency.

    As soon as one operation settles the next pending task starts, so up to
    `limit` operations are always in flight until fewer than that remain.

    Args:
        tasks: Ordered task descriptors
        limit: Maximum concurrent operations (>= 1)
        operation: Async callable producing one result per task
        policy: FailurePolicy.FAST_FAIL or FailurePolicy.COLLECT_ALL
        cancel_pending: Cancel in-flight operations after a fast-fail
        on_settle: Progress callback (outcome, completed, total)

    Returns:
        Results ordered like the input tasks
    """
    return await SchedulerRun(
        tasks,
        limit,
        operation,
        policy=policy,
        cancel_pending=cancel_pending,
        on_settle=on_settle
    ).execute()
