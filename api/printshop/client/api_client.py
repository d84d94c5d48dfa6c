"""Async HTTP client for the print shop API."""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """The API answered with ``success: false`` or a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class PrintShopClient:
    """Thin wrapper over ``httpx.AsyncClient`` speaking the response envelope.

    Args:
        base_url: API root, e.g. ``http://localhost:8000``
        organization_id: Sent as X-Organization-ID on every request
        user_id: Sent as X-User-ID on every request
        http_client: Pre-built client (tests pass one with a MockTransport)
        timeout: Request timeout in seconds when the client is built here

    Example:
        >>> async with PrintShopClient("http://localhost:8000", organization_id=1) as client:
        ...     status = await client.get_printer_status(3)
    """

    def __init__(
        self,
        base_url: str,
        organization_id: Optional[int] = None,
        user_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        headers = {}
        if organization_id is not None:
            headers["X-Organization-ID"] = str(organization_id)
        if user_id:
            headers["X-User-ID"] = user_id

        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.headers = headers

    async def __aenter__(self) -> "PrintShopClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        response = await self.http_client.request(
            method, f"{self.base_url}/api{path}", params=params, json=json, headers=self.headers
        )
        try:
            body = response.json()
        except ValueError:
            raise ApiClientError(response.status_code, f"Risposta non valida: {response.text[:200]}")

        if response.is_error or not body.get("success", False):
            raise ApiClientError(response.status_code, body.get("error") or "Errore sconosciuto")
        return body

    async def get_printer_status(self, stampante_id: int) -> Dict[str, Any]:
        body = await self._request("GET", f"/stampanti/status/{stampante_id}")
        return body["status"]

    async def list_stampanti(self, solo_attive: bool = False) -> List[Dict[str, Any]]:
        body = await self._request("GET", "/stampanti", params={"solo_attive": solo_attive})
        return body["stampanti"]

    async def control_printer(
        self, stampante_id: int, action: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/stampanti/{stampante_id}/control", json={"action": action, "params": params or {}}
        )

    async def list_orders(self, stato: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"stato": stato} if stato else None
        body = await self._request("GET", "/ordini", params=params)
        return body["ordini"]

    async def submit_order(self, gcode_id: int, quantita: int, **fields: Any) -> Dict[str, Any]:
        body = await self._request("POST", "/ordini", json={"gcode_id": gcode_id, "quantita": quantita, **fields})
        return body["ordine"]

    async def mark_delivered(self, ordine_id: int) -> Dict[str, Any]:
        body = await self._request("POST", f"/ordini/{ordine_id}/consegna")
        return body["ordine"]

    async def list_queue(
        self, stampante_id: Optional[int] = None, stato: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = {key: value for key, value in (("stampante_id", stampante_id), ("stato", stato)) if value is not None}
        body = await self._request("GET", "/coda-stampa", params=params or None)
        return body["coda"]

    async def enqueue(self, ordine_id: int, stampante_id: int) -> Dict[str, Any]:
        body = await self._request("POST", "/coda-stampa", json={"ordine_id": ordine_id, "stampante_id": stampante_id})
        return body["coda"]

    async def start_print(self, entry_id: int) -> Dict[str, Any]:
        body = await self._request("POST", f"/coda-stampa/{entry_id}/start")
        return body["coda"]

    async def complete_print(self, entry_id: int, esito: str = "done", note: Optional[str] = None) -> Dict[str, Any]:
        body = await self._request("POST", f"/coda-stampa/{entry_id}/complete", json={"esito": esito, "note": note})
        return body["coda"]

    async def concatenation_candidates(self, stampante_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"stampante_id": stampante_id} if stampante_id is not None else None
        body = await self._request("GET", "/coda-stampa/concatenation-candidates", params=params)
        return body["proposte"]
