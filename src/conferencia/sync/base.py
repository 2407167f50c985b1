"""Collaborator protocols consumed by the offline queue manager."""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

ConnectivityHandler = Callable[[bool], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class DurableStore(Protocol):
    """Process-durable string key-value store.

    Implementations raise :class:`~conferencia.errors.StorageError` on I/O
    failure.
    """

    async def get(self, key: str) -> str | None:
        """Return the value under *key*, or ``None`` when absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*."""
        ...

    async def remove(self, key: str) -> None:
        """Delete *key*."""
        ...


@runtime_checkable
class ConnectivityMonitor(Protocol):
    """Push-style source of network reachability transitions."""

    def on_change(self, handler: ConnectivityHandler) -> Unsubscribe:
        """Register *handler*; it is called once right away with the current
        state and again on every transition.  Returns an unsubscribe callable.
        """
        ...


@runtime_checkable
class SubmissionClient(Protocol):
    """Creates records on the remote checklist service.

    Both calls raise :class:`~conferencia.errors.NetworkError` on non-2xx
    status, transport failure or timeout.
    """

    async def create_nota(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def create_palete(self, payload: dict[str, Any]) -> dict[str, Any]: ...
