import asyncio
from typing import Any

import httpx

from finance_tracker.domain.documents import decode_document, encode_fields, encode_value
from finance_tracker.errors import RecordStoreError, UpstreamUnavailable
from finance_tracker.logger import get_logger

logger = get_logger(__name__)


def build_where(filters: dict[str, Any]) -> dict[str, Any] | None:
    clauses = [
        {
            "fieldFilter": {
                "field": {"fieldPath": field},
                "op": "EQUAL",
                "value": encode_value(value),
            }
        }
        for field, value in filters.items()
    ]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"compositeFilter": {"op": "AND", "filters": clauses}}


class RecordStore:
    """
    Async adapter over the document store's REST API.

    Records are plain dicts keyed by their stored (camelCase) field names; every
    returned record also carries the store-assigned ``id`` and ``createdAt``.
    """

    def __init__(
        self,
        base_url: str | None,
        project_id: str | None,
        database: str = "(default)",
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or "").rstrip("/") or None
        self.project_id = project_id
        self.database = database
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.project_id)

    @property
    def documents_url(self) -> str:
        return f"{self.base_url}/v1/projects/{self.project_id}/databases/{self.database}/documents"

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Any = None,
        json: Any = None,
        allow_missing: bool = False,
    ) -> httpx.Response | None:
        if not self.configured:
            logger.error("[STORE] Record store is not configured.")
            raise UpstreamUnavailable("Record store unavailable", error="Record store is not configured")

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                url,
                headers=self.headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            logger.error("[STORE] %s %s failed: %s", method, url, exc)
            raise UpstreamUnavailable("Record store unavailable", error=str(exc) or exc.__class__.__name__) from exc

        if allow_missing and response.status_code == 404:
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("[STORE] %s %s returned %s", method, url, response.status_code)
            if response.status_code >= 500:
                raise UpstreamUnavailable("Record store unavailable", error=str(exc)) from exc
            raise RecordStoreError(error=str(exc)) from exc
        return response

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"{self.documents_url}/{collection}",
            json={"fields": encode_fields(data)},
        )
        record = decode_document(response.json())
        logger.debug("[STORE] Created %s/%s", collection, record["id"])
        return record

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        response = await self._request(
            "GET",
            f"{self.documents_url}/{collection}/{record_id}",
            allow_missing=True,
        )
        if response is None:
            return None
        return decode_document(response.json())

    async def update(self, collection: str, record_id: str, data: dict[str, Any]) -> None:
        """Patch the given fields only; the document must already exist."""
        params: list[tuple[str, str]] = [("updateMask.fieldPaths", field) for field in data]
        params.append(("currentDocument.exists", "true"))
        await self._request(
            "PATCH",
            f"{self.documents_url}/{collection}/{record_id}",
            params=params,
            json={"fields": encode_fields(data)},
        )
        logger.debug("[STORE] Updated %s/%s (%s)", collection, record_id, ", ".join(data))

    async def delete(self, collection: str, record_id: str) -> None:
        await self._request("DELETE", f"{self.documents_url}/{collection}/{record_id}")
        logger.debug("[STORE] Deleted %s/%s", collection, record_id)

    async def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        """Return every record in ``collection`` whose fields equal all ``filters``."""
        structured_query: dict[str, Any] = {"from": [{"collectionId": collection}]}
        where = build_where(filters)
        if where:
            structured_query["where"] = where

        response = await self._request(
            "POST",
            f"{self.documents_url}:runQuery",
            json={"structuredQuery": structured_query},
        )
        records = [
            decode_document(entry["document"])
            for entry in response.json()
            if isinstance(entry, dict) and entry.get("document")
        ]
        logger.debug("[STORE] Query %s %s -> %d records", collection, sorted(filters), len(records))
        return records
