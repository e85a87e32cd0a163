from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..app.settings import BackOfficeSettings, get_settings
from ..exceptions import BackOfficeError
from ..http import new_async_httpx_client
from ..models import (
    Block,
    Document,
    DocumentCategory,
    DocumentPage,
    DocumentQuery,
    LandPlot,
    Plot,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _unwrap(payload: Any, *keys: str) -> Any:
    """Some endpoints wrap their result (``{"data": [...]}``), some don't."""
    if isinstance(payload, dict):
        for key in keys:
            if key in payload:
                return payload[key]
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or f"HTTP {response.status_code}"


class HttpBackOffice:
    """httpx-backed client for the back-office REST API."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        settings: Optional[BackOfficeSettings] = None,
    ):
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or new_async_httpx_client(
            base_url=self._settings.base_url,
            token=self._settings.token,
            timeout_seconds=self._settings.timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpBackOffice":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.debug("%s %s -> %s", method, url, exc.response.status_code)
            raise BackOfficeError(
                _error_message(exc.response), status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %r", method, url, exc)
            raise BackOfficeError(f"{method} {url} failed: {exc!r}") from exc
        return response

    async def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._request(method, url, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackOfficeError(
                f"{method} {url} returned invalid JSON", status_code=response.status_code
            ) from exc

    @staticmethod
    def _parse(model: type[M], data: Any, what: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise BackOfficeError(f"Malformed {what} payload: {exc}") from exc

    def _parse_list(self, model: type[M], data: Any, what: str) -> list[M]:
        items = _unwrap(data, "data")
        if items is None:
            return []
        if not isinstance(items, list):
            raise BackOfficeError(f"Malformed {what} payload: expected a list")
        return [self._parse(model, item, what) for item in items]

    # Documents

    async def list_documents(self, query: DocumentQuery) -> DocumentPage:
        data = await self._json("GET", "/documents", params=query.to_params())
        total = None
        if isinstance(data, dict):
            total = data.get("total")
            data = data.get("documents", data.get("data", []))
        documents = self._parse_list(Document, data, "document")
        try:
            total = int(total) if total is not None else len(documents)
        except (TypeError, ValueError):
            total = len(documents)
        return DocumentPage(documents=documents, total=total)

    async def create_document(
        self,
        fields: dict[str, str],
        *,
        file: bytes,
        file_name: str,
        content_type: str = "application/octet-stream",
    ) -> Document:
        data = await self._json(
            "POST",
            "/documents",
            data=fields,
            files={"document": (file_name, file, content_type)},
        )
        return self._parse(Document, _unwrap(data, "document"), "document")

    async def update_document(self, document_id: int, changes: dict[str, Any]) -> Document:
        data = await self._json("PUT", f"/documents/{document_id}", json=changes)
        return self._parse(Document, _unwrap(data, "document"), "document")

    async def delete_document(self, document_id: int) -> None:
        await self._request("DELETE", f"/documents/{document_id}")

    async def download_document(self, document_id: int) -> bytes:
        response = await self._request("GET", f"/documents/{document_id}/download")
        return response.content

    # Categories

    async def list_categories(self) -> list[DocumentCategory]:
        data = await self._json("GET", "/documents/categories/list")
        return self._parse_list(DocumentCategory, _unwrap(data, "categories"), "category")

    async def create_category(
        self, name: str, *, description: Optional[str] = None, color: str = "#007bff"
    ) -> DocumentCategory:
        body = {"name": name, "description": description or "", "color": color}
        data = await self._json("POST", "/documents/categories", json=body)
        return self._parse(DocumentCategory, _unwrap(data, "category"), "category")

    # Unit sources

    async def list_plots(self, property_id: int) -> list[Plot]:
        data = await self._json("GET", f"/plots/property/{property_id}")
        return self._parse_list(Plot, data, "plot")

    async def list_land_plots(self, property_id: int) -> list[LandPlot]:
        data = await self._json("GET", f"/land-plots/property/{property_id}")
        return self._parse_list(LandPlot, data, "land plot")

    async def list_blocks(self, property_id: int) -> list[Block]:
        data = await self._json("GET", f"/property-block-config/{property_id}")
        return self._parse_list(Block, data, "block")
