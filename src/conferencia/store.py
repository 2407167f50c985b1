"""DuckDBStore — durable key-value store backing the offline queue.

A single ``kv`` table in a DuckDB database file holds string values by key.
The queue keeps one JSON array per record kind in it.  DuckDB calls block,
so they run on a one-thread executor owned by the store; the event loop only
ever awaits them and calls are serialised in submission order.

Usage::

    store = DuckDBStore("conferencia.duckdb")
    await store.set("offline_notas", "[]")
    raw = await store.get("offline_notas")
    await store.remove("offline_notas")
    store.close()

Pass ``":memory:"`` for a throwaway store (tests, demos).
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, TypeVar

import duckdb

from conferencia.errors import StorageError

log = logging.getLogger(__name__)

T = TypeVar("T")


class DuckDBStore:
    """Async string key-value store on a DuckDB database."""

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="duckdb-store")
        self.closed = False
        try:
            self.conn: duckdb.DuckDBPyConnection = duckdb.connect(self._db_path)
            self._create_schema()
        except duckdb.Error as exc:
            self._executor.shutdown(wait=False)
            raise StorageError(f"cannot open store at {self._db_path}: {exc}") from exc

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key        VARCHAR PRIMARY KEY,
                value      TEXT NOT NULL,
                updated_at TIMESTAMPTZ DEFAULT now()
            )
        """)

    # ------------------------------------------------------------------
    # Blocking primitives (run on the store's executor)
    # ------------------------------------------------------------------

    def _get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM kv WHERE key = ?", [key]).fetchone()
        return None if row is None else row[0]

    def _set(self, key: str, value: str) -> None:
        self.conn.execute(
            """
            INSERT INTO kv (key, value, updated_at)
            VALUES (?, ?, now())
            ON CONFLICT (key) DO UPDATE SET
                value      = excluded.value,
                updated_at = now();
            """,
            [key, value],
        )

    def _remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv WHERE key = ?", [key])

    def _keys(self) -> list[str]:
        return [r[0] for r in self.conn.execute("SELECT key FROM kv ORDER BY key").fetchall()]

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, functools.partial(fn, *args))
        except duckdb.Error as exc:
            raise StorageError(f"{fn.__name__.lstrip('_')} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Public async API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` when absent."""
        return await self._run(self._get, key)

    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        await self._run(self._set, key, value)

    async def remove(self, key: str) -> None:
        """Delete *key*; removing a missing key is a no-op."""
        await self._run(self._remove, key)

    async def keys(self) -> list[str]:
        return await self._run(self._keys)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._executor.shutdown(wait=True)
        self.conn.close()
        log.debug("closed store %s", self._db_path)

    def __enter__(self) -> "DuckDBStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
