"""Shared fakes and fixtures for the offline queue tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from conferencia.errors import NetworkError, StorageError
from conferencia.records import Avaria, Nota, Palete
from conferencia.store import DuckDBStore


class FakeClient:
    """Submission client that records every call.

    ``fail`` decides per payload whether the call raises ``NetworkError``
    (or ``error``, when given, instead);
    ``delay`` makes each call sleep first so drains overlap in time.
    """

    def __init__(self, *, fail: Any = None, delay: float = 0.0, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail = fail or (lambda kind, payload: False)
        self.delay = delay
        self.error = error
        self.in_flight = 0
        self.max_in_flight = 0

    async def _create(self, kind: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((kind, payload))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail(kind, payload):
                if self.error is not None:
                    raise self.error
                raise NetworkError("Erro 500: Internal Server Error", status=500)
            return {"id": len(self.calls), **payload}
        finally:
            self.in_flight -= 1

    async def create_nota(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("nota", payload)

    async def create_palete(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("palete", payload)


class BrokenStore:
    """Store whose selected operations raise ``StorageError``."""

    def __init__(self, inner: DuckDBStore, *, broken: set[str]) -> None:
        self.inner = inner
        self.broken = broken
        self.writes: list[tuple[str, str]] = []

    async def get(self, key: str) -> str | None:
        if "get" in self.broken:
            raise StorageError("disk unavailable")
        return await self.inner.get(key)

    async def set(self, key: str, value: str) -> None:
        if "set" in self.broken:
            raise StorageError("disk full")
        self.writes.append(("set", key))
        await self.inner.set(key, value)

    async def remove(self, key: str) -> None:
        if "remove" in self.broken:
            raise StorageError("disk full")
        self.writes.append(("remove", key))
        await self.inner.remove(key)


def make_nota(numero: int = 100, *, rota: int = 1, **kwargs: Any) -> Nota:
    fields: dict[str, Any] = {
        "numeroRota": rota,
        "numeroNota": numero,
        "tipologia": "seco",
        "conferidoPor": "Joana",
        "avaria": "nao",
    }
    fields.update(kwargs)
    return Nota(**fields)


def make_nota_com_avaria(numero: int = 200, *, rota: int = 1) -> Nota:
    return make_nota(
        numero,
        rota=rota,
        avaria="sim",
        avarias=[Avaria(tipoErro="falta", codProduto="123", quantidade="2", unidadeMedida="cx")],
    )


def make_palete(numero: str = "P-1", *, rota: int = 1, **kwargs: Any) -> Palete:
    fields: dict[str, Any] = {
        "numeroRota": rota,
        "numeroPallet": numero,
        "tipologia": "congelado",
        "remontado": "nao",
        "conferido": "sim",
    }
    fields.update(kwargs)
    return Palete(**fields)


@pytest.fixture()
def store():
    s = DuckDBStore(":memory:")
    yield s
    s.close()


@pytest.fixture()
def client() -> FakeClient:
    return FakeClient()
