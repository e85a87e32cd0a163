from __future__ import annotations

import logging
import math
from typing import Optional

from ..backoffice.base import BackOffice
from ..exceptions import BackOfficeError
from ..models import Document, DocumentFilters, DocumentQuery, Unit

logger = logging.getLogger(__name__)


class DocumentListing:
    """Paginated, filtered document list for a property (and optionally one unit)."""

    def __init__(self, backoffice: BackOffice, property_id: int, *, page_size: int = 12):
        self.backoffice = backoffice
        self.property_id = property_id
        self.page_size = page_size
        self.page = 1
        self.unit: Optional[Unit] = None
        self.filters = DocumentFilters()
        self.documents: list[Document] = []
        self.total = 0
        self.error: Optional[str] = None

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    def query(self) -> DocumentQuery:
        identity: dict = {"property_id": self.property_id}
        if self.unit is not None and self.unit.business_key:
            identity["plot_number"] = self.unit.business_key
        return DocumentQuery.build(
            self.filters, **identity, page=self.page, limit=self.page_size
        )

    def reset(self) -> None:
        self.page = 1

    def select(self, unit: Optional[Unit], filters: Optional[DocumentFilters] = None) -> None:
        self.unit = unit
        self.filters = filters or DocumentFilters()
        self.reset()

    async def refresh(self) -> list[Document]:
        try:
            page = await self.backoffice.list_documents(self.query())
        except BackOfficeError as exc:
            logger.warning(
                "document list refresh failed: %s", exc, extra={"property_id": self.property_id}
            )
            self.error = f"Failed to fetch documents: {exc}"
            self.documents = []
            self.total = 0
            return []
        self.error = None
        self.documents = list(page.documents)
        self.total = page.total or len(page.documents)
        return self.documents

    async def goto(self, page: int) -> list[Document]:
        page = max(1, page)
        # upper bound only once a refresh has reported a total
        if self.total:
            page = min(page, self.total_pages)
        self.page = page
        return await self.refresh()
