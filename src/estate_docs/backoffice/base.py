from __future__ import annotations

from typing import Any, Optional, Protocol

from ..models import (
    Block,
    Document,
    DocumentCategory,
    DocumentPage,
    DocumentQuery,
    LandPlot,
    Plot,
)


class BackOffice(Protocol):
    """The REST back office, as seen by the document subsystem.

    Every method raises ``BackOfficeError`` on transport or HTTP failure.
    """

    async def list_documents(self, query: DocumentQuery) -> DocumentPage:
        ...

    async def create_document(
        self,
        fields: dict[str, str],
        *,
        file: bytes,
        file_name: str,
        content_type: str = "application/octet-stream",
    ) -> Document:
        ...

    async def update_document(self, document_id: int, changes: dict[str, Any]) -> Document:
        ...

    async def delete_document(self, document_id: int) -> None:
        ...

    async def download_document(self, document_id: int) -> bytes:
        ...

    async def list_categories(self) -> list[DocumentCategory]:
        ...

    async def create_category(
        self, name: str, *, description: Optional[str] = None, color: str = "#007bff"
    ) -> DocumentCategory:
        ...

    async def list_plots(self, property_id: int) -> list[Plot]:
        ...

    async def list_land_plots(self, property_id: int) -> list[LandPlot]:
        ...

    async def list_blocks(self, property_id: int) -> list[Block]:
        ...
