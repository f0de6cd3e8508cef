"""Utility functions and helpers."""

from .async_helpers import SimulatedFailure, run_in_batches, simulated_operation
from .config import SLIDEPOOL_HOME, setup_console_logging, setup_logging
from .helpers import format_duration, generate_uid

__all__ = [
    "SLIDEPOOL_HOME",
    "SimulatedFailure",
    "format_duration",
    "generate_uid",
    "run_in_batches",
    "setup_console_logging",
    "setup_logging",
    "simulated_operation",
]
