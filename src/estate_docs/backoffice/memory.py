from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..exceptions import BackOfficeError
from ..models import (
    Block,
    Document,
    DocumentCategory,
    DocumentPage,
    DocumentQuery,
    LandPlot,
    Plot,
)

Predicate = Callable[[Any], bool]


@dataclass
class _Rule:
    operation: str
    predicate: Optional[Predicate]
    error: Exception
    event: Optional[asyncio.Event] = None

    def matches(self, operation: str, arg: Any) -> bool:
        if operation != self.operation:
            return False
        return self.predicate is None or bool(self.predicate(arg))


class InMemoryBackOffice:
    """Back office kept in process memory, for tests and local dev only.

    Mirrors the REST list semantics: an absent query key does not filter,
    ``search`` matches title/description, ``page``/``limit`` paginate.
    Every call is recorded in ``calls``; ``fail()`` and ``hold()`` inject
    errors and suspensions per operation.
    """

    def __init__(self) -> None:
        self.documents: dict[int, Document] = {}
        self.files: dict[int, bytes] = {}
        self.categories: dict[int, DocumentCategory] = {}
        self.plots: dict[int, list[Plot]] = {}
        self.land_plots: dict[int, list[LandPlot]] = {}
        self.blocks: dict[int, list[Block]] = {}
        self.calls: list[tuple[str, Any]] = []
        self._failures: list[_Rule] = []
        self._holds: list[_Rule] = []
        self._next_id = 1
        self._next_category_id = 1

    # Seeding

    def _allocate_id(self, explicit: Optional[int] = None) -> int:
        doc_id = explicit if explicit is not None else self._next_id
        self._next_id = max(self._next_id, doc_id + 1)
        return doc_id

    def add_document(self, **fields: Any) -> Document:
        fields["id"] = self._allocate_id(fields.get("id"))
        doc = Document(**fields)
        self.documents[doc.id] = doc
        return doc

    def add_category(self, name: str, color: str = "#007bff", **fields: Any) -> DocumentCategory:
        cat_id = fields.pop("id", None) or self._next_category_id
        self._next_category_id = max(self._next_category_id, cat_id + 1)
        cat = DocumentCategory(id=cat_id, name=name, color=color, **fields)
        self.categories[cat.id] = cat
        return cat

    def add_units(
        self,
        property_id: int,
        *,
        plots: Optional[list[Plot]] = None,
        land_plots: Optional[list[LandPlot]] = None,
        blocks: Optional[list[Block]] = None,
    ) -> None:
        self.plots.setdefault(property_id, []).extend(plots or [])
        self.land_plots.setdefault(property_id, []).extend(land_plots or [])
        self.blocks.setdefault(property_id, []).extend(blocks or [])

    # Fault injection

    def fail(
        self,
        operation: str,
        predicate: Optional[Predicate] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self._failures.append(
            _Rule(operation, predicate, error or BackOfficeError(f"{operation} unavailable", status_code=503))
        )

    def hold(self, operation: str, predicate: Optional[Predicate] = None) -> asyncio.Event:
        """Suspend matching calls until the returned event is set."""
        event = asyncio.Event()
        self._holds.append(_Rule(operation, predicate, BackOfficeError("held"), event))
        return event

    def calls_to(self, operation: str) -> list[Any]:
        return [arg for op, arg in self.calls if op == operation]

    @property
    def queries(self) -> list[DocumentQuery]:
        return self.calls_to("list_documents")

    async def _enter(self, operation: str, arg: Any = None) -> None:
        self.calls.append((operation, arg))
        for rule in self._holds:
            if rule.matches(operation, arg) and rule.event is not None:
                await rule.event.wait()
        # yield once so concurrent callers interleave like real I/O
        await asyncio.sleep(0)
        for rule in self._failures:
            if rule.matches(operation, arg):
                raise rule.error

    # Documents

    @staticmethod
    def _matches(doc: Document, query: DocumentQuery) -> bool:
        if query.property_id is not None and doc.property_id != query.property_id:
            return False
        if query.plot_number is not None and doc.plot_number != query.plot_number:
            return False
        if query.plot_id is not None and doc.plot_id != query.plot_id:
            return False
        if query.category is not None and doc.category_id != query.category:
            return False
        if query.status is not None and doc.status != query.status:
            return False
        if query.search:
            needle = query.search.lower()
            haystack = f"{doc.title} {doc.description or ''}".lower()
            if needle not in haystack:
                return False
        return True

    async def list_documents(self, query: DocumentQuery) -> DocumentPage:
        await self._enter("list_documents", query)
        matched = [d for d in self.documents.values() if self._matches(d, query)]
        matched.sort(key=lambda d: d.id, reverse=True)
        total = len(matched)
        if query.limit is not None:
            start = ((query.page or 1) - 1) * query.limit
            matched = matched[start:start + query.limit]
        return DocumentPage(documents=matched, total=total)

    async def create_document(
        self,
        fields: dict[str, str],
        *,
        file: bytes,
        file_name: str,
        content_type: str = "application/octet-stream",
    ) -> Document:
        await self._enter("create_document", fields)
        now = datetime.now(timezone.utc)
        doc = Document(
            id=self._allocate_id(),
            property_id=int(fields["property_id"]),
            title=fields.get("title", ""),
            description=fields.get("description") or None,
            category_id=int(fields["category_id"]) if fields.get("category_id") else None,
            plot_number=fields.get("plot_number"),
            plot_id=int(fields["plot_id"]) if fields.get("plot_id") else None,
            plot_type=fields.get("plot_type"),
            status=fields.get("status") or "active",
            tags=fields.get("tags", ""),
            file_name=file_name,
            file_size=len(file),
            mime_type=content_type,
            created_at=now,
            updated_at=now,
        )
        self.documents[doc.id] = doc
        self.files[doc.id] = file
        return doc

    def _get(self, document_id: int) -> Document:
        try:
            return self.documents[document_id]
        except KeyError:
            raise BackOfficeError("Document not found", status_code=404) from None

    async def update_document(self, document_id: int, changes: dict[str, Any]) -> Document:
        await self._enter("update_document", (document_id, changes))
        doc = self._get(document_id)
        updated = Document.model_validate(
            {**doc.model_dump(), **changes, "updated_at": datetime.now(timezone.utc)}
        )
        self.documents[document_id] = updated
        return updated

    async def delete_document(self, document_id: int) -> None:
        await self._enter("delete_document", document_id)
        self._get(document_id)
        del self.documents[document_id]
        self.files.pop(document_id, None)

    async def download_document(self, document_id: int) -> bytes:
        await self._enter("download_document", document_id)
        self._get(document_id)
        return self.files.get(document_id, b"")

    # Categories

    async def list_categories(self) -> list[DocumentCategory]:
        await self._enter("list_categories")
        return list(self.categories.values())

    async def create_category(
        self, name: str, *, description: Optional[str] = None, color: str = "#007bff"
    ) -> DocumentCategory:
        await self._enter("create_category", name)
        return self.add_category(name, color=color, description=description)

    # Unit sources

    async def list_plots(self, property_id: int) -> list[Plot]:
        await self._enter("list_plots", property_id)
        return list(self.plots.get(property_id, []))

    async def list_land_plots(self, property_id: int) -> list[LandPlot]:
        await self._enter("list_land_plots", property_id)
        return list(self.land_plots.get(property_id, []))

    async def list_blocks(self, property_id: int) -> list[Block]:
        await self._enter("list_blocks", property_id)
        return list(self.blocks.get(property_id, []))
