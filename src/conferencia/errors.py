"""Error taxonomy and the ``Result`` type used by storage and network calls.

Store and client adapters return ``Ok(value)`` or ``Err(error)`` instead of
raising, so the queue manager can decide in one place how each failure is
collapsed into a default value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


class ConferenciaError(Exception):
    """Base class for every error raised by this package."""


class StorageError(ConferenciaError):
    """The durable local store failed to read, write or remove a key."""


class NetworkError(ConferenciaError):
    """A remote call failed: transport error, timeout or non-2xx status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConflictError(NetworkError):
    """The server rejected a record as a duplicate (HTTP 409)."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err[E]]
