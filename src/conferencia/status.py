"""Read-only views over the offline queue for UI consumers.

:class:`SyncStatus` is what a status badge binds to: online / syncing flags,
pending counts and a manual sync trigger.  The day-summary helpers combine
records already on the server with the ones still waiting in the queue and
return :mod:`polars` DataFrames ready for table widgets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable

import polars as pl

from conferencia.errors import NetworkError
from conferencia.records import RecordKind

if TYPE_CHECKING:
    from conferencia.sync.client import ConferenciaClient
    from conferencia.sync.queue import OfflineCount, OfflineQueueManager, SyncReport

OFFLINE_COLOR = "#ff6b6b"
SYNCING_COLOR = "#4ecdc4"
PENDING_COLOR = "#ffa726"
SYNCED_COLOR = "#51cf66"

_NOTA_SCHEMA = {
    "numeroRota": pl.Int64,
    "numeroNota": pl.Int64,
    "tipologia": pl.Utf8,
    "conferidoPor": pl.Utf8,
    "avaria": pl.Utf8,
}
_PALETE_SCHEMA = {
    "numeroRota": pl.Int64,
    "numeroPallet": pl.Utf8,
    "tipologia": pl.Utf8,
    "remontado": pl.Utf8,
    "conferido": pl.Utf8,
}


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def to_iso(day: date) -> str:
    """``YYYY-MM-DD``, the format the list endpoints expect."""
    return day.strftime("%Y-%m-%d")


def to_br(day: date) -> str:
    """``DD/MM/YYYY`` for display."""
    return day.strftime("%d/%m/%Y")


# ---------------------------------------------------------------------------
# Status badge
# ---------------------------------------------------------------------------


def status_text(is_online: bool, is_syncing: bool, pending: int) -> str:
    if not is_online:
        return "Offline"
    if is_syncing:
        return "Sincronizando..."
    if pending > 0:
        return f"{pending} item(s) pendente(s)"
    return "Sincronizado"


def status_color(is_online: bool, is_syncing: bool, pending: int) -> str:
    if not is_online:
        return OFFLINE_COLOR
    if is_syncing:
        return SYNCING_COLOR
    if pending > 0:
        return PENDING_COLOR
    return SYNCED_COLOR


class SyncStatus:
    """Presenter facade over an :class:`OfflineQueueManager`."""

    def __init__(self, manager: "OfflineQueueManager") -> None:
        self._manager = manager

    @property
    def is_online(self) -> bool:
        return self._manager.is_online

    @property
    def is_syncing(self) -> bool:
        return self._manager.is_syncing

    async def get_offline_count(self) -> "OfflineCount":
        return await self._manager.count()

    async def force_sync(self) -> "SyncReport | None":
        return await self._manager.force_sync()

    async def text(self) -> str:
        count = await self.get_offline_count()
        return status_text(self.is_online, self.is_syncing, count.total)

    async def color(self) -> str:
        count = await self.get_offline_count()
        return status_color(self.is_online, self.is_syncing, count.total)

    async def can_sync(self) -> bool:
        """Whether a manual sync button should be offered."""
        if not self.is_online or self.is_syncing:
            return False
        return (await self.get_offline_count()).total > 0


# ---------------------------------------------------------------------------
# Day summary
# ---------------------------------------------------------------------------


def records_frame(kind: RecordKind, records: Iterable[dict[str, Any]]) -> pl.DataFrame:
    """One row per record with the columns a summary table shows."""
    schema = _NOTA_SCHEMA if kind is RecordKind.NOTA else _PALETE_SCHEMA
    rows = [{c: r.get(c) for c in schema} for r in records]
    return pl.DataFrame(rows, schema=schema, strict=False)


async def pending_frame(manager: "OfflineQueueManager", kind: RecordKind) -> pl.DataFrame:
    """Queued records of *kind* as a DataFrame, in replay order."""
    return records_frame(kind, await manager.list_pending(kind))


def day_rotas(notas: Iterable[dict[str, Any]], paletes: Iterable[dict[str, Any]]) -> list[int]:
    """Sorted distinct integer route numbers across both record lists."""
    rotas: set[int] = set()
    for record in [*notas, *paletes]:
        rota = record.get("numeroRota")
        if isinstance(rota, int) and not isinstance(rota, bool):
            rotas.add(rota)
    return sorted(rotas)


@dataclass
class DaySummary:
    dia: str
    notas: list[dict[str, Any]] = field(default_factory=list)
    paletes: list[dict[str, Any]] = field(default_factory=list)
    pending_notas: list[dict[str, Any]] = field(default_factory=list)
    pending_paletes: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def rotas(self) -> list[int]:
        return day_rotas(self.notas, self.paletes)

    def notas_frame(self) -> pl.DataFrame:
        return records_frame(RecordKind.NOTA, self.notas)

    def paletes_frame(self) -> pl.DataFrame:
        return records_frame(RecordKind.PALETE, self.paletes)

    def tipologia_counts(self) -> pl.DataFrame:
        """Synced plus pending records per tipologia and kind."""
        rows = [
            {"kind": kind, "tipologia": r.get("tipologia")}
            for kind, records in (
                ("nota", self.notas),
                ("palete", self.paletes),
                ("nota", self.pending_notas),
                ("palete", self.pending_paletes),
            )
            for r in records
        ]
        if not rows:
            return pl.DataFrame(schema={"kind": pl.Utf8, "tipologia": pl.Utf8, "total": pl.UInt32})
        return (
            pl.DataFrame(rows)
            .group_by(["kind", "tipologia"])
            .agg(pl.len().alias("total"))
            .sort(["kind", "tipologia"])
        )


async def day_summary(
    client: "ConferenciaClient",
    manager: "OfflineQueueManager",
    dia: str,
    rota: int | None = None,
) -> DaySummary:
    """Fetch the day's records from the server and attach the pending queue.

    A server failure is reported in :attr:`DaySummary.error`; the pending
    records are still filled in.
    """
    summary = DaySummary(dia=dia)
    try:
        summary.notas = await client.list_notas(dia, rota)
        summary.paletes = await client.list_paletes(dia, rota)
    except NetworkError as exc:
        summary.notas, summary.paletes = [], []
        summary.error = str(exc) or "Falha ao carregar"
    summary.pending_notas = await manager.list_pending(RecordKind.NOTA)
    summary.pending_paletes = await manager.list_pending(RecordKind.PALETE)
    return summary
