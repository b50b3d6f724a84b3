"""``CatalogBackend`` over the catalog service's JSON HTTP API."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional, Sequence

import httpx

from eclat.application.dtos import PageResult
from eclat.application.interfaces import CatalogBackend
from eclat.config import API_PREFIX, DEFAULT_API_BASE_URL, DEFAULT_REQUEST_TIMEOUT_SEC
from eclat.domain.models import AggregateStats, AssetRecord, QuerySnapshot
from eclat.errors import BackendError, ConflictError, NotFoundError, RequestTimeoutError

from . import wire

LOGGER = logging.getLogger(__name__)

EVENTS_PATH = "/events"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


def raise_for_status(response: httpx.Response) -> None:
    """Map an error response onto the engine's error hierarchy."""
    status = response.status_code
    if status < 400:
        return
    message = _error_message(response)
    if status == 404:
        raise NotFoundError(message, status_code=status)
    if status == 409:
        raise ConflictError(message, status_code=status)
    raise BackendError(message, status_code=status)


class HttpCatalogBackend(CatalogBackend):
    """Talks to ``<base_url>/api`` with a shared :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/") + API_PREFIX,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None and self._owns_client:
            await client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise BackendError("Backend is closed")
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {path} failed: {exc}") from exc
        raise_for_status(response)
        return response

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"{method} {path} returned invalid JSON") from exc

    async def _optional_asset(self, method: str, path: str, **kwargs: Any) -> Optional[AssetRecord]:
        payload = await self._json(method, path, **kwargs)
        if isinstance(payload, dict) and "id" in payload:
            return wire.decode_asset(payload)
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def fetch_assets(self, snapshot: QuerySnapshot, page: int) -> PageResult:
        params = wire.encode_query(snapshot.to_params(page))
        payload = await self._json("GET", "/assets", params=params)
        return wire.decode_page(payload or {}, page, snapshot.page_size)

    async def fetch_aggregate_stats(self) -> AggregateStats:
        return wire.decode_stats(await self._json("GET", "/assets/sidebar-stats") or {})

    async def fetch_available_colors(self) -> list[str]:
        return wire.decode_colors(await self._json("GET", "/assets/colors") or [])

    async def fetch_asset(self, asset_id: int) -> AssetRecord:
        payload = await self._json("GET", f"/assets/{asset_id}")
        if not isinstance(payload, dict):
            raise NotFoundError(f"Asset {asset_id} not found", status_code=404)
        return wire.decode_asset(payload)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def mutate_asset_fields(self, asset_id: int, patch: dict[str, Any]) -> AssetRecord:
        payload = await self._json("PATCH", f"/assets/{asset_id}", json=wire.encode_patch(patch))
        if isinstance(payload, dict) and "id" in payload:
            return wire.decode_asset(payload)
        return await self.fetch_asset(asset_id)

    async def toggle_favorite(self, asset_id: int) -> Optional[AssetRecord]:
        return await self._optional_asset("PATCH", f"/assets/{asset_id}/toggle-favorite")

    async def set_hidden(self, asset_id: int, hidden: bool) -> Optional[AssetRecord]:
        return await self._optional_asset("PATCH", f"/assets/{asset_id}/hidden", json={"isHidden": hidden})

    async def rename_asset(self, asset_id: int, new_name: str) -> Optional[AssetRecord]:
        return await self._optional_asset("PATCH", f"/assets/{asset_id}/rename", json={"newName": new_name})

    async def update_tags(self, asset_id: int, tag_names: Sequence[str]) -> None:
        await self._request("POST", f"/assets/{asset_id}/tags", json={"tagsNames": list(tag_names)})

    async def delete_assets_permanently(self, asset_ids: Sequence[int]) -> None:
        await self._request("POST", "/assets/delete-permanently", json={"ids": list(asset_ids)})

    async def trash_assets(self, asset_ids: Sequence[int]) -> None:
        await self._request("POST", "/assets/trash", json={"ids": list(asset_ids)})

    async def restore_assets(self, asset_ids: Sequence[int]) -> None:
        await self._request("POST", "/assets/restore", json={"ids": list(asset_ids)})

    async def set_asset_type(self, asset_id: int, asset_type: str) -> None:
        await self._request("PATCH", f"/assets/{asset_id}/type", json={"fileType": asset_type})

    async def add_asset_to_collection(self, collection_id: int, asset_id: int) -> None:
        await self._request("POST", f"/materialsets/{collection_id}/assets/{asset_id}")

    async def remove_asset_from_collection(self, collection_id: int, asset_id: int) -> None:
        await self._request("DELETE", f"/materialsets/{collection_id}/assets/{asset_id}")

    # ------------------------------------------------------------------
    # Push stream
    # ------------------------------------------------------------------
    async def push_events(self) -> AsyncIterator[tuple[str, Any]]:
        """Yield ``(event_name, payload)`` pairs from the server-sent event stream."""
        if self._client is None:
            raise BackendError("Backend is closed")
        try:
            async with self._client.stream(
                "GET", EVENTS_PATH, headers={"Accept": "text/event-stream"}, timeout=None
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise_for_status(response)
                name, data = "message", []
                async for line in response.aiter_lines():
                    if not line:
                        if data:
                            yield name, _decode_data("\n".join(data))
                        name, data = "message", []
                    elif line.startswith(":"):
                        continue
                    elif line.startswith("event:"):
                        name = line[6:].strip()
                    elif line.startswith("data:"):
                        data.append(line[5:].lstrip())
        except httpx.HTTPError as exc:
            raise BackendError(f"Event stream failed: {exc}") from exc


def _decode_data(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text
