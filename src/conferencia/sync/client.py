"""HTTP client for the checklist API.

Expected routes
---------------
POST /notas                    – create a Nota, returns the stored record
POST /paletes                  – create a Palete, returns the stored record
GET  /notas?dia=YYYY-MM-DD&rota=N    – list Notas for a day (rota optional)
GET  /paletes?dia=YYYY-MM-DD&rota=N  – list Paletes for a day (rota optional)

Every request is bounded by ``timeout`` seconds.  A non-2xx status or a
transport failure raises :class:`~conferencia.errors.NetworkError`; HTTP 409
raises :class:`~conferencia.errors.ConflictError`.
"""

from __future__ import annotations

from typing import Any

import httpx

from conferencia.config import DEFAULT_TIMEOUT, Settings
from conferencia.errors import ConflictError, NetworkError
from conferencia.records import QueueRecord, RecordKind


def _query(params: dict[str, Any]) -> dict[str, str]:
    """Drop ``None`` and empty-string values from query parameters."""
    return {k: str(v) for k, v in params.items() if v is not None and v != ""}


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    text = response.text
    message = text or f"Erro {response.status_code}: {response.reason_phrase}"
    if response.status_code == 409:
        raise ConflictError(message, status=409)
    raise NetworkError(message, status=response.status_code)


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ConferenciaClient:
    """Async HTTP client for the Notas / Paletes endpoints."""

    def __init__(
        self,
        api_base: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (api_base or Settings.from_env().api_base).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ConferenciaClient":
        return cls(settings.api_base, timeout=settings.timeout, **kwargs)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc
        _raise_for_status(response)
        return response

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_nota(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", RecordKind.NOTA.path, json=payload)
        body = _decode(response)
        # The API sometimes answers a created Nota with an empty/plain body
        return body if isinstance(body, dict) else {"success": True}

    async def create_palete(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", RecordKind.PALETE.path, json=payload)
        body = _decode(response)
        return body if isinstance(body, dict) else {"success": True}

    async def submit(self, record: QueueRecord) -> dict[str, Any]:
        """Create *record* remotely, dispatching on its kind."""
        if record.kind is RecordKind.NOTA:
            return await self.create_nota(record.to_dict())
        return await self.create_palete(record.to_dict())

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    async def list_notas(self, dia: str, rota: int | None = None) -> list[dict[str, Any]]:
        response = await self._request("GET", RecordKind.NOTA.path, params=_query({"dia": dia, "rota": rota}))
        body = _decode(response)
        return body if isinstance(body, list) else []

    async def list_paletes(self, dia: str, rota: int | None = None) -> list[dict[str, Any]]:
        response = await self._request("GET", RecordKind.PALETE.path, params=_query({"dia": dia, "rota": rota}))
        body = _decode(response)
        return body if isinstance(body, list) else []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ConferenciaClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
