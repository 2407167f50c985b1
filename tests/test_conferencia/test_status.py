"""Unit tests for conferencia.status."""

import asyncio
from datetime import date

import httpx
import polars as pl
import pytest

from conferencia.records import RecordKind
from conferencia.status import (
    OFFLINE_COLOR,
    PENDING_COLOR,
    SYNCED_COLOR,
    SYNCING_COLOR,
    DaySummary,
    SyncStatus,
    day_rotas,
    day_summary,
    pending_frame,
    records_frame,
    status_color,
    status_text,
    to_br,
    to_iso,
)
from conferencia.store import DuckDBStore
from conferencia.sync.client import ConferenciaClient
from conferencia.sync.queue import OfflineQueueManager

from conftest import FakeClient, make_nota, make_palete

# ---------------------------------------------------------------------------
# Badge text / colour
# ---------------------------------------------------------------------------


class TestStatusText:
    @pytest.mark.parametrize(
        "online, syncing, pending, expected",
        [
            (False, False, 3, "Offline"),
            (False, True, 0, "Offline"),
            (True, True, 2, "Sincronizando..."),
            (True, False, 2, "2 item(s) pendente(s)"),
            (True, False, 0, "Sincronizado"),
        ],
    )
    def test_text(self, online, syncing, pending, expected):
        assert status_text(online, syncing, pending) == expected

    def test_colors(self):
        assert status_color(False, False, 0) == OFFLINE_COLOR
        assert status_color(True, True, 0) == SYNCING_COLOR
        assert status_color(True, False, 1) == PENDING_COLOR
        assert status_color(True, False, 0) == SYNCED_COLOR


class TestDates:
    def test_to_iso(self):
        assert to_iso(date(2026, 3, 7)) == "2026-03-07"

    def test_to_br(self):
        assert to_br(date(2026, 3, 7)) == "07/03/2026"


# ---------------------------------------------------------------------------
# SyncStatus presenter
# ---------------------------------------------------------------------------


class TestSyncStatus:
    def test_reflects_manager(self, store: DuckDBStore, client: FakeClient):
        manager = OfflineQueueManager(store, client, is_online=False)
        status = SyncStatus(manager)

        async def scenario():
            await manager.enqueue(RecordKind.NOTA, make_nota())
            return await status.get_offline_count(), await status.text(), await status.can_sync()

        count, text, can_sync = asyncio.run(scenario())
        assert count.total == 1
        assert text == "Offline"
        assert can_sync is False
        assert status.is_online is False
        assert status.is_syncing is False

    def test_force_sync_drains(self, store: DuckDBStore, client: FakeClient):
        manager = OfflineQueueManager(store, client, is_online=True)
        status = SyncStatus(manager)

        async def scenario():
            await manager.enqueue(RecordKind.PALETE, make_palete())
            before = await status.can_sync()
            await status.force_sync()
            return before, await status.text(), await status.color()

        before, text, color = asyncio.run(scenario())
        assert before is True
        assert text == "Sincronizado"
        assert color == SYNCED_COLOR


# ---------------------------------------------------------------------------
# Frames and day summary
# ---------------------------------------------------------------------------


class TestFrames:
    def test_pending_frame_in_replay_order(self, store: DuckDBStore, client: FakeClient):
        manager = OfflineQueueManager(store, client)

        async def scenario():
            for n in (3, 1, 2):
                await manager.enqueue(RecordKind.NOTA, make_nota(n))
            return await pending_frame(manager, RecordKind.NOTA)

        df = asyncio.run(scenario())
        assert isinstance(df, pl.DataFrame)
        assert list(df["numeroNota"]) == [3, 1, 2]
        assert "avarias" not in df.columns

    def test_empty_frame_keeps_schema(self):
        df = records_frame(RecordKind.PALETE, [])
        assert len(df) == 0
        assert df.columns == ["numeroRota", "numeroPallet", "tipologia", "remontado", "conferido"]

    def test_day_rotas_sorted_distinct_ints(self):
        notas = [{"numeroRota": 3}, {"numeroRota": 1}, {"numeroRota": "7"}]
        paletes = [{"numeroRota": 3}, {"numeroRota": 2}, {}]
        assert day_rotas(notas, paletes) == [1, 2, 3]

    def test_tipologia_counts(self):
        summary = DaySummary(
            dia="2026-10-19",
            notas=[{"tipologia": "seco"}, {"tipologia": "seco"}],
            pending_notas=[{"tipologia": "seco"}],
            paletes=[{"tipologia": "congelado"}],
        )
        df = summary.tipologia_counts()
        rows = {(r["kind"], r["tipologia"]): r["total"] for r in df.to_dicts()}
        assert rows == {("nota", "seco"): 3, ("palete", "congelado"): 1}

    def test_tipologia_counts_empty(self):
        assert len(DaySummary(dia="2026-10-19").tipologia_counts()) == 0


class TestDaySummary:
    def test_combines_server_and_pending(self, store: DuckDBStore, client: FakeClient):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/notas":
                return httpx.Response(200, json=[{"numeroRota": 4, "numeroNota": 1, "tipologia": "seco"}])
            return httpx.Response(200, json=[{"numeroRota": 2, "numeroPallet": "P", "tipologia": "seco"}])

        manager = OfflineQueueManager(store, client)

        async def scenario():
            await manager.enqueue(RecordKind.PALETE, make_palete("offline"))
            async with ConferenciaClient("http://api.test", transport=httpx.MockTransport(handler)) as api:
                return await day_summary(api, manager, "2026-10-19")

        summary = asyncio.run(scenario())
        assert summary.error is None
        assert summary.rotas == [2, 4]
        assert [p["numeroPallet"] for p in summary.pending_paletes] == ["offline"]
        assert len(summary.notas_frame()) == 1

    def test_server_failure_keeps_pending(self, store: DuckDBStore, client: FakeClient):
        manager = OfflineQueueManager(store, client)

        async def scenario():
            await manager.enqueue(RecordKind.NOTA, make_nota())
            transport = httpx.MockTransport(lambda r: httpx.Response(500, text="indisponível"))
            async with ConferenciaClient("http://api.test", transport=transport) as api:
                return await day_summary(api, manager, "2026-10-19", rota=1)

        summary = asyncio.run(scenario())
        assert summary.error == "indisponível"
        assert summary.notas == []
        assert len(summary.pending_notas) == 1
