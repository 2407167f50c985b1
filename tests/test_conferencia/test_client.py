"""Unit tests for conferencia.sync.client.ConferenciaClient."""

import asyncio
import json

import httpx
import pytest

from conferencia.errors import ConflictError, NetworkError
from conferencia.sync.base import SubmissionClient
from conferencia.sync.client import ConferenciaClient

from conftest import make_nota, make_palete

API = "http://api.test"


def _run(handler, call):
    async def scenario():
        async with ConferenciaClient(API, transport=httpx.MockTransport(handler)) as client:
            return await call(client)

    return asyncio.run(scenario())


class TestCreate:
    def test_satisfies_protocol(self):
        client = ConferenciaClient(API, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert isinstance(client, SubmissionClient)
        asyncio.run(client.aclose())

    def test_create_nota_posts_json(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": 1, "numeroNota": 100})

        body = _run(handler, lambda c: c.create_nota(make_nota().to_dict()))
        assert body == {"id": 1, "numeroNota": 100}
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/notas"
        assert json.loads(seen[0].content)["numeroNota"] == 100

    def test_create_nota_non_json_body_is_success(self):
        body = _run(lambda r: httpx.Response(201, text=""), lambda c: c.create_nota({"numeroNota": 1}))
        assert body == {"success": True}

    def test_submit_dispatches_palete(self):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(201, json={"numeroPallet": "P-1"})

        body = _run(handler, lambda c: c.submit(make_palete()))
        assert paths == ["/paletes"]
        assert body["numeroPallet"] == "P-1"

    def test_server_error_raises_network_error(self):
        with pytest.raises(NetworkError) as info:
            _run(lambda r: httpx.Response(500, text="boom"), lambda c: c.create_palete({}))
        assert info.value.status == 500
        assert str(info.value) == "boom"

    def test_empty_error_body_uses_status_line(self):
        with pytest.raises(NetworkError, match="Erro 502"):
            _run(lambda r: httpx.Response(502), lambda c: c.create_nota({}))

    def test_conflict_raises_conflict_error(self):
        with pytest.raises(ConflictError):
            _run(lambda r: httpx.Response(409, text="Palete já existe"), lambda c: c.create_palete({}))

    def test_timeout_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(NetworkError, match="timed out"):
            _run(handler, lambda c: c.create_nota({}))

    def test_connect_error_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        with pytest.raises(NetworkError):
            _run(handler, lambda c: c.create_nota({}))


class TestList:
    def test_list_notas_sends_day_and_route(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"numeroRota": 3}])

        rows = _run(handler, lambda c: c.list_notas("2026-10-19", 3))
        assert rows == [{"numeroRota": 3}]
        assert dict(seen[0].url.params) == {"dia": "2026-10-19", "rota": "3"}

    def test_list_paletes_drops_empty_route(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        _run(handler, lambda c: c.list_paletes("2026-10-19"))
        assert dict(seen[0].url.params) == {"dia": "2026-10-19"}

    def test_non_list_body_is_empty(self):
        assert _run(lambda r: httpx.Response(200, json={"x": 1}), lambda c: c.list_notas("2026-10-19")) == []

    def test_list_error_raises(self):
        with pytest.raises(NetworkError):
            _run(lambda r: httpx.Response(503), lambda c: c.list_paletes("2026-10-19"))
