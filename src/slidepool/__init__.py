"""
slidepool - Sliding-window bounded concurrency

Runs an ordered collection of async tasks with at most N in flight, starting
the next task the moment any running one settles, and returns results in
input order.
"""

__version__ = "0.1.0"

from .core.errors import InvalidConfiguration, OperationError, SchedulerError
from .core.outcome import Outcome, split_outcomes
from .core.scheduler import FailurePolicy, RunStats, SchedulerRun, WindowScheduler, run
from .protocols.http import FetchError, FetchResult, HttpFetcher, fetch_urls

__all__ = [
    # Scheduler
    "FailurePolicy",
    "RunStats",
    "SchedulerRun",
    "WindowScheduler",
    "run",
    # Outcomes and errors
    "InvalidConfiguration",
    "OperationError",
    "Outcome",
    "SchedulerError",
    "split_outcomes",
    # HTTP transport
    "FetchError",
    "FetchResult",
    "HttpFetcher",
    "fetch_urls",
]
