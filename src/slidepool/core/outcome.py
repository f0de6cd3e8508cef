# src/slidepool/core/outcome.py
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Outcome:
    """Settlement of a single task: either a value or the error it raised."""
    index: int
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, index: int, value: Any) -> 'Outcome':
        return cls(index=index, value=value)

    @classmethod
    def failure(cls, index: int, error: BaseException) -> 'Outcome':
        return cls(index=index, error=error)

    def unwrap(self) -> Any:
        """Return the value, or raise the recorded error."""
        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> dict[str, Any]:
        """Convert outcome to dictionary."""
        return {
            'index': self.index,
            'ok': self.ok,
            'value': self.value,
            'error': repr(self.error) if self.error is not None else None,
        }


def split_outcomes(outcomes: list[Outcome]) -> tuple[list[Any], list[Outcome]]:
    """
    Separate successful values from failures.

    Args:
        outcomes: Ordered outcomes from a collect-all run

    Returns:
        Tuple of (values of successful tasks in input order, failed outcomes)
    """
    values = [o.value for o in outcomes if o.ok]
    failures = [o for o in outcomes if not o.ok]
    return values, failures
