"""Core scheduling functionality."""

from .errors import InvalidConfiguration, OperationError, SchedulerError
from .outcome import Outcome, split_outcomes
from .scheduler import FailurePolicy, RunStats, SchedulerRun, WindowScheduler, run

__all__ = [
    "FailurePolicy",
    "InvalidConfiguration",
    "OperationError",
    "Outcome",
    "RunStats",
    "SchedulerError",
    "SchedulerRun",
    "WindowScheduler",
    "run",
    "split_outcomes",
]
