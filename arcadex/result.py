"""Success/failure values returned by every client operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome wrapping a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """Failed outcome.

    `error` is the primary failure. `secondary` holds a failure that happened
    while cleaning up after it (for example a rollback that also failed).
    """

    error: Exception
    secondary: Exception | None = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):  # type: ignore[no-untyped-def]
        if self.secondary is not None:
            note = f"rollback also failed: {self.secondary}"
            if note not in getattr(self.error, "__notes__", ()):
                self.error.add_note(note)
        raise self.error


Result = Union[Ok[T], Err]


__all__ = ["Err", "Ok", "Result"]
