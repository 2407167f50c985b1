"""Connectivity monitors.

:class:`ManualConnectivity` is driven by the host application (or a test)
calling :meth:`~ManualConnectivity.set_connected` whenever the platform
reports a reachability change.  :class:`PollingConnectivityMonitor` is the
fallback for platforms without push notifications: it probes a URL with
httpx on a fixed interval and reports only actual transitions.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from conferencia.config import Settings
from conferencia.sync.base import ConnectivityHandler, Unsubscribe

log = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 3.0


async def probe(url: str, *, timeout: float = DEFAULT_PROBE_TIMEOUT, client: httpx.AsyncClient | None = None) -> bool:
    """Best-effort reachability check: ``True`` when *url* answers at all."""
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=timeout)
    try:
        await client.head(url, timeout=timeout)
        return True
    except httpx.HTTPError as exc:
        log.debug("probe of %s failed: %s", url, exc)
        return False
    finally:
        if owns_client:
            await client.aclose()


class _Broadcaster:
    def __init__(self, connected: bool) -> None:
        self.connected = connected
        self._handlers: list[ConnectivityHandler] = []

    def on_change(self, handler: ConnectivityHandler) -> Unsubscribe:
        self._handlers.append(handler)
        handler(self.connected)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def _emit(self, connected: bool) -> None:
        self.connected = connected
        for handler in list(self._handlers):
            try:
                handler(connected)
            except Exception:  # noqa: BLE001
                log.exception("connectivity handler %r failed", handler)


class ManualConnectivity(_Broadcaster):
    """Connectivity source fed by the embedding application."""

    def __init__(self, connected: bool = False) -> None:
        super().__init__(connected)

    def set_connected(self, connected: bool) -> None:
        """Report the current reachability to every subscriber."""
        self._emit(bool(connected))


class PollingConnectivityMonitor(_Broadcaster):
    """Probe *url* every *interval* seconds and broadcast transitions."""

    def __init__(
        self,
        url: str,
        *,
        interval: float = 5.0,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        connected: bool = False,
    ) -> None:
        super().__init__(connected)
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self._client = client
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
        connected: bool = False,
    ) -> "PollingConnectivityMonitor":
        """Probe ``settings.probe_url`` every ``settings.probe_interval`` seconds."""
        return cls(settings.probe_url, interval=settings.probe_interval, client=client, connected=connected)

    async def check(self) -> bool:
        """Probe once; broadcast if the state changed.  Returns the new state."""
        connected = await probe(self.url, timeout=self.timeout, client=self._client)
        if connected != self.connected:
            log.info("connectivity changed: %s", "online" if connected else "offline")
            self._emit(connected)
        return connected

    async def _loop(self) -> None:
        while True:
            try:
                await self.check()
            except Exception:  # noqa: BLE001
                log.exception("connectivity check of %s failed", self.url)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
