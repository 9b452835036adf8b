"""Explicit success/failure values for retryable remote calls.

The retry controller branches on these values instead of catching
exceptions. unwrap() converts back to a raised error at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Classification of a failed attempt."""

    TIMEOUT = "timeout"
    REMOTE = "remote"
    REJECTED = "rejected"
    EMPTY_CHUNK = "empty_chunk"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.TIMEOUT, ErrorKind.REMOTE, ErrorKind.UNEXPECTED)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful attempt carrying its value."""

    value: T
    attempts: int = 1

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """A failed attempt carrying its classification and the original error."""

    kind: ErrorKind
    error: Exception
    attempts: int = 1

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error)

    def unwrap(self):
        raise self.error


Result = Ok[T] | Err
