# src/slidepool/core/errors.py
"""Exceptions raised by the scheduler."""

from typing import Any


class SchedulerError(Exception):
    """Base exception for everything the scheduler raises."""


class InvalidConfiguration(SchedulerError, ValueError):
    """A run was rejected before any task was dispatched."""


class OperationError(SchedulerError):
    """A task's operation failed and the run was aborted."""

    def __init__(self, index: int, task: Any, error: BaseException):
        """
        Initialize operation error.

        Args:
            index: Position of the failing task in the input sequence
            task: The task descriptor that was passed to the operation
            error: Exception raised by the operation
        """
        super().__init__(f"Task {index} failed: {error!r}")
        self.index = index
        self.task = task
        self.error = error
