"""OfflineQueueManager — durable write queue for Notas and Paletes.

Records captured while the device is offline are appended to a JSON array in
the durable store (one key per record kind).  When connectivity returns the
manager drains both arrays through the submission client, Notas first, and
then clears each kind's key.

Failure policy
--------------
Nothing here raises to the caller.  Store and network calls are turned into
``Ok`` / ``Err`` results and collapsed into defaults plus a log line:

* a failed store read or write aborts the operation (``enqueue`` loses the
  record, ``count`` returns zeros, a drain pass stops);
* a malformed stored array reads as empty;
* a failed submission is logged and the drain moves on.  By default the
  failed record is then dropped along with the rest of the batch; pass
  ``retain_failed=True`` to keep only the failed records queued instead.

Usage::

    manager = OfflineQueueManager(store, client, connectivity)
    async with manager:
        await manager.submit(nota)          # direct when online, else queued
        print(await manager.count())
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from conferencia.config import Settings
from conferencia.connectivity import PollingConnectivityMonitor, probe
from conferencia.errors import Err, NetworkError, Ok, Result, StorageError
from conferencia.records import QueueRecord, RecordKind
from conferencia.sync.base import ConnectivityMonitor, DurableStore, SubmissionClient, Unsubscribe

log = logging.getLogger(__name__)

DEFAULT_SUBMIT_TIMEOUT = 12.0

#: Drain order: every Nota is attempted (and its key cleared) before Paletes.
DRAIN_ORDER = (RecordKind.NOTA, RecordKind.PALETE)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncState:
    is_online: bool
    is_syncing: bool


@dataclass(frozen=True)
class OfflineCount:
    notas: int = 0
    paletes: int = 0

    @property
    def total(self) -> int:
        return self.notas + self.paletes

    def to_dict(self) -> dict[str, int]:
        return {"notas": self.notas, "paletes": self.paletes, "total": self.total}


@dataclass
class KindReport:
    """Outcome of draining one record kind."""

    kind: RecordKind
    attempted: int = 0
    submitted: int = 0
    failed: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SyncReport:
    """Outcome of one :meth:`OfflineQueueManager.drain_and_sync` pass."""

    kinds: dict[RecordKind, KindReport] = field(default_factory=dict)
    error: str | None = None

    @property
    def attempted(self) -> int:
        return sum(r.attempted for r in self.kinds.values())

    @property
    def submitted(self) -> int:
        return sum(r.submitted for r in self.kinds.values())

    @property
    def failed(self) -> int:
        return sum(len(r.failed) for r in self.kinds.values())


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class OfflineQueueManager:
    """Owns the two offline queue keys and reconciles them with the server."""

    def __init__(
        self,
        store: DurableStore,
        client: SubmissionClient,
        connectivity: ConnectivityMonitor | None = None,
        *,
        retain_failed: bool = False,
        submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT,
        is_online: bool = False,
    ) -> None:
        self.store = store
        self.client = client
        self.connectivity = connectivity
        self.retain_failed = retain_failed
        self.submit_timeout = submit_timeout

        self.is_online = is_online
        self.is_syncing = False
        self.last_sync: SyncReport | None = None

        # Serialises read-modify-write of the queue keys (enqueue vs. drain clear)
        self._write_lock = asyncio.Lock()
        self._unsubscribe: Unsubscribe | None = None
        self._drain_task: asyncio.Task[SyncReport | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        # Set by the factories for the store, client and monitor they build
        self._owns_resources = False
        self._owned_monitor: PollingConnectivityMonitor | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        connectivity: ConnectivityMonitor | None = None,
        *,
        is_online: bool = False,
    ) -> "OfflineQueueManager":
        """Wire a DuckDB store and an HTTP client from *settings*."""
        from conferencia.store import DuckDBStore
        from conferencia.sync.client import ConferenciaClient

        manager = cls(
            DuckDBStore(settings.db_path),
            ConferenciaClient.from_settings(settings),
            connectivity,
            retain_failed=settings.retain_failed,
            submit_timeout=settings.timeout,
            is_online=is_online,
        )
        manager._owns_resources = True
        return manager

    @classmethod
    async def open(
        cls,
        settings: Settings,
        connectivity: ConnectivityMonitor | None = None,
        *,
        probe_client: httpx.AsyncClient | None = None,
    ) -> "OfflineQueueManager":
        """Like :meth:`from_settings`, with ``is_online`` seeded by a probe.

        Without *connectivity* a :class:`PollingConnectivityMonitor` built
        from *settings* is used; it starts and stops with the manager.
        """
        is_online = await probe(settings.probe_url, client=probe_client)
        owned_monitor = None
        if connectivity is None:
            owned_monitor = PollingConnectivityMonitor.from_settings(
                settings, client=probe_client, connected=is_online
            )
            connectivity = owned_monitor
        manager = cls.from_settings(settings, connectivity, is_online=is_online)
        manager._owned_monitor = owned_monitor
        return manager

    @property
    def state(self) -> SyncState:
        return SyncState(is_online=self.is_online, is_syncing=self.is_syncing)

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the connectivity monitor (at most one subscription)."""
        self._loop = asyncio.get_running_loop()
        if self.connectivity is None or self._unsubscribe is not None:
            return
        self._unsubscribe = self.connectivity.on_change(self._on_connectivity)
        if self._owned_monitor is not None:
            self._owned_monitor.start()

    def _on_connectivity(self, connected: bool) -> None:
        # May be called from a platform callback outside the event loop
        self.is_online = connected
        if not connected:
            log.info("offline: new records will be queued")
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and running is self._loop:
            self._schedule_drain()
        elif self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._schedule_drain)
        else:
            log.warning("online again but no event loop is running; drain deferred")

    def _schedule_drain(self) -> None:
        if self.is_syncing or (self._drain_task is not None and not self._drain_task.done()):
            log.debug("online again, drain already in flight")
            return
        assert self._loop is not None
        self._drain_task = self._loop.create_task(self.drain_and_sync())

    async def close(self) -> None:
        """Drop the connectivity subscription and wait for a running drain.

        Resources built by :meth:`from_settings` or :meth:`open` are closed too.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._owned_monitor is not None:
            await self._owned_monitor.stop()
        if self._drain_task is not None:
            await self._drain_task
            self._drain_task = None
        if self._owns_resources:
            await self.client.aclose()
            self.store.close()
            self._owns_resources = False

    async def __aenter__(self) -> "OfflineQueueManager":
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Store adapters (Result-returning)
    # ------------------------------------------------------------------

    async def _read(self, kind: RecordKind) -> Result[list[dict[str, Any]], StorageError]:
        try:
            raw = await self.store.get(kind.storage_key)
        except StorageError as exc:
            return Err(exc)
        if raw is None:
            return Ok([])
        try:
            items = json.loads(raw)
        except ValueError:
            log.warning("discarding malformed JSON under %s", kind.storage_key)
            return Ok([])
        if not isinstance(items, list):
            log.warning("expected a JSON array under %s, got %s", kind.storage_key, type(items).__name__)
            return Ok([])
        return Ok(items)

    async def _write(self, kind: RecordKind, items: list[dict[str, Any]]) -> Result[None, StorageError]:
        try:
            if items:
                await self.store.set(kind.storage_key, json.dumps(items, ensure_ascii=False))
            else:
                await self.store.remove(kind.storage_key)
        except StorageError as exc:
            return Err(exc)
        return Ok(None)

    # ------------------------------------------------------------------
    # Submission adapter (Result-returning)
    # ------------------------------------------------------------------

    async def _attempt(self, kind: RecordKind, payload: dict[str, Any]) -> Result[dict[str, Any], NetworkError]:
        if kind is RecordKind.NOTA:
            call = self.client.create_nota(payload)
        else:
            call = self.client.create_palete(payload)
        try:
            return Ok(await asyncio.wait_for(call, timeout=self.submit_timeout))
        except TimeoutError:
            return Err(NetworkError(f"submission timed out after {self.submit_timeout:g}s"))
        except NetworkError as exc:
            return Err(exc)
        except Exception as exc:  # noqa: BLE001
            log.exception("%s submission raised unexpectedly", kind.name.lower())
            return Err(NetworkError(str(exc) or type(exc).__name__))

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    async def enqueue(self, kind: RecordKind, record: QueueRecord | dict[str, Any]) -> bool:
        """Append *record* to the persisted queue for *kind*.

        Returns ``False`` (and the record is lost) when the store fails.
        """
        payload = record if isinstance(record, dict) else record.to_dict()
        async with self._write_lock:
            read = await self._read(kind)
            if isinstance(read, Err):
                log.error("could not save %s offline: %s", kind.name.lower(), read.error)
                return False
            items = read.value
            items.append(payload)
            written = await self._write(kind, items)
        if isinstance(written, Err):
            log.error("could not save %s offline: %s", kind.name.lower(), written.error)
            return False
        log.info("queued %s offline (%d pending)", kind.name.lower(), len(items))
        return True

    async def submit(self, record: QueueRecord) -> dict[str, Any] | None:
        """Send *record* now when online, otherwise queue it.

        Returns the server's record on a direct submission, ``None`` when the
        record was queued instead (offline, or the direct call failed).
        """
        kind = record.kind
        if self.is_online:
            result = await self._attempt(kind, record.to_dict())
            if isinstance(result, Ok):
                return result.value
            log.warning("direct %s submission failed, queueing: %s", kind.name.lower(), result.error)
        await self.enqueue(kind, record)
        return None

    async def count(self) -> OfflineCount:
        """Pending records per kind, read fresh from the store."""
        notas = await self._read(RecordKind.NOTA)
        paletes = await self._read(RecordKind.PALETE)
        if isinstance(notas, Err) or isinstance(paletes, Err):
            error = notas.error if isinstance(notas, Err) else paletes.error
            log.error("could not count offline records: %s", error)
            return OfflineCount()
        return OfflineCount(notas=len(notas.value), paletes=len(paletes.value))

    async def get_offline_count(self) -> dict[str, int]:
        return (await self.count()).to_dict()

    async def list_pending(self, kind: RecordKind) -> list[dict[str, Any]]:
        """Every queued record of *kind*, in replay order."""
        result = await self._read(kind)
        if isinstance(result, Err):
            log.error("could not list offline %s records: %s", kind.name.lower(), result.error)
            return []
        return result.value

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def force_sync(self) -> SyncReport | None:
        """Drain now, unless offline or a drain is already running."""
        if not self.is_online or self.is_syncing:
            return None
        return await self.drain_and_sync()

    async def drain_and_sync(self) -> SyncReport | None:
        """Submit every queued record, Notas then Paletes.

        Returns ``None`` without doing anything when another drain is running.
        """
        if self.is_syncing:
            return None
        self.is_syncing = True
        report = SyncReport()
        try:
            for kind in DRAIN_ORDER:
                report.kinds[kind] = await self._drain_kind(kind)
        except StorageError as exc:
            report.error = str(exc)
            log.error("sync aborted: %s", exc)
        except Exception as exc:  # noqa: BLE001
            report.error = str(exc)
            log.exception("sync aborted")
        finally:
            self.is_syncing = False
        self.last_sync = report
        if report.attempted:
            log.info(
                "sync finished: %d attempted, %d submitted, %d failed",
                report.attempted, report.submitted, report.failed,
            )
        return report

    async def _drain_kind(self, kind: RecordKind) -> KindReport:
        report = KindReport(kind)
        read = await self._read(kind)
        if isinstance(read, Err):
            raise read.error
        batch = read.value
        if not batch:
            return report

        for payload in batch:
            report.attempted += 1
            result = await self._attempt(kind, payload)
            if isinstance(result, Ok):
                report.submitted += 1
            else:
                log.warning("could not sync %s: %s", kind.name.lower(), result.error)
                report.failed.append(payload)

        async with self._write_lock:
            # Records queued while this batch was in flight stay queued
            current = await self._read(kind)
            if isinstance(current, Err):
                raise current.error
            remaining = current.value[len(batch):]
            if self.retain_failed:
                remaining = report.failed + remaining
            written = await self._write(kind, remaining)
        if isinstance(written, Err):
            raise written.error
        return report
