"""Per-property state of the documents screen.

A ``PropertySession`` is built when a property is opened and dropped when
another one is opened. It owns the unit catalog result, the filter context,
the paginated listing and the panel state of every unit. The
``DocumentCache`` is passed in by reference; ``Workspace`` keeps one cache
for the whole screen and clears it when the property changes.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Sequence, Union

from .app.settings import BackOfficeSettings, get_settings
from .backoffice.base import BackOffice
from .documents.cache import PROPERTY_KEY, DocumentCache
from .documents.listing import DocumentListing
from .documents.loader import BulkAssociationLoader, LoadReport
from .documents.mutations import MutationCoordinator
from .documents.resolver import DocumentResolver, Outcome, Resolution
from .exceptions import BackOfficeError, MutationError
from .models import Document, DocumentCategory, DocumentFilters, Property, Unit
from .units.catalog import UnitCatalog, UnitSet

logger = logging.getLogger(__name__)


class PanelState(str, Enum):
    COLLAPSED = "collapsed"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    ERROR = "error"


_OUTCOME_STATES = {
    Outcome.FOUND: PanelState.LOADED,
    Outcome.EMPTY: PanelState.EMPTY,
    Outcome.FAILED: PanelState.ERROR,
}


def _key(unit: Optional[Unit]) -> str:
    return unit.key if unit is not None else PROPERTY_KEY


class PropertySession:
    def __init__(
        self,
        property_id: int,
        backoffice: BackOffice,
        *,
        cache: Optional[DocumentCache] = None,
        settings: Optional[BackOfficeSettings] = None,
    ):
        settings = settings or get_settings()
        self.property_id = property_id
        self.backoffice = backoffice
        self.settings = settings
        self.cache = cache if cache is not None else DocumentCache()
        self.catalog = UnitCatalog(backoffice)
        self.resolver = DocumentResolver(
            backoffice,
            tier_limit=settings.tier_limit,
            property_limit=settings.property_limit,
        )
        self.loader = BulkAssociationLoader(
            self.resolver, self.cache, drop_superseded=settings.drop_superseded
        )
        self.listing = DocumentListing(backoffice, property_id, page_size=settings.page_size)
        self.mutations = MutationCoordinator(self)

        self.units = UnitSet(property_id=property_id)
        self.categories: list[DocumentCategory] = []
        self.filters = DocumentFilters()
        self.last_report: Optional[LoadReport] = None
        self._expanded: set[str] = set()
        self._loading: set[str] = set()
        self._outcomes: dict[str, PanelState] = {}

    # Loading

    async def _load_categories(self) -> list[DocumentCategory]:
        try:
            return await self.backoffice.list_categories()
        except BackOfficeError as exc:
            logger.warning("could not load document categories: %s", exc)
            return []

    async def open(self) -> UnitSet:
        self.units, self.categories = await asyncio.gather(
            self.catalog.load_units(self.property_id), self._load_categories()
        )
        await self.load_documents()
        return self.units

    def _absorb(self, report: LoadReport) -> None:
        for key, resolution in report.resolutions.items():
            self._outcomes[key] = _OUTCOME_STATES[resolution.outcome]
        for key in report.failures:
            self._outcomes[key] = PanelState.ERROR

    async def reload_units(self, units: Sequence[Unit]) -> LoadReport:
        report = await self.loader.load_all(self.property_id, units, self.filters)
        self._absorb(report)
        return report

    async def load_documents(self) -> LoadReport:
        report = await self.reload_units(self.units.all())
        self.last_report = report
        return report

    async def _resolve_property(self) -> list[Document]:
        resolution: Resolution = await self.resolver.resolve_outcome(
            self.property_id, None, self.filters
        )
        self._outcomes[PROPERTY_KEY] = _OUTCOME_STATES[resolution.outcome]
        return resolution.documents

    async def property_documents(self) -> list[Document]:
        """Documents resolved without a unit (broad property lookup)."""
        return await self.cache.get_or_load(PROPERTY_KEY, self._resolve_property)

    async def refetch(self) -> LoadReport:
        report = await self.load_documents()
        if PROPERTY_KEY in self._expanded:
            await self.property_documents()
        await self.listing.refresh()
        return report

    # Reading

    async def documents_for(self, unit: Optional[Unit]) -> list[Document]:
        """Cached documents of a unit; only a cache miss triggers resolution."""
        key = _key(unit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        if unit is None:
            return await self.property_documents()
        report = await self.reload_units([unit])
        return report.documents.get(key, [])

    def document_counts(self) -> dict[str, Optional[int]]:
        counts: dict[str, Optional[int]] = {}
        for unit in self.units:
            cached = self.cache.get(unit.key)
            counts[unit.key] = None if cached is None else len(cached)
        return counts

    # Panels

    def panel_state(self, unit: Optional[Unit]) -> PanelState:
        key = _key(unit)
        if key in self._loading:
            return PanelState.LOADING
        if key not in self._expanded:
            return PanelState.COLLAPSED
        state = self._outcomes.get(key)
        if state is not None:
            return state
        cached = self.cache.get(key)
        if cached is None:
            return PanelState.COLLAPSED
        return PanelState.LOADED if cached else PanelState.EMPTY

    async def expand(self, unit: Optional[Unit]) -> list[Document]:
        key = _key(unit)
        self._expanded.add(key)
        if self.cache.get(key) is None:
            self._loading.add(key)
        try:
            return await self.documents_for(unit)
        finally:
            self._loading.discard(key)

    def collapse(self, unit: Optional[Unit]) -> None:
        self._expanded.discard(_key(unit))

    # Context

    def invalidate_all(self) -> None:
        """Clear every cache entry along with the panel outcomes derived from it."""
        self.cache.invalidate_all()
        self._outcomes.clear()

    async def set_filters(self, filters: DocumentFilters, *, reload: bool = True) -> None:
        if filters == self.filters:
            return
        self.filters = filters
        self.invalidate_all()
        self.listing.select(self.listing.unit, filters)
        if reload:
            await self.refetch()

    async def select_unit(self, unit: Optional[Unit]) -> list[Document]:
        self.listing.select(unit, self.filters)
        return await self.listing.refresh()

    async def create_category(
        self, name: str, *, description: Optional[str] = None, color: str = "#007bff"
    ) -> DocumentCategory:
        if not name.strip():
            raise MutationError("create_category", "Category name is required")
        try:
            category = await self.backoffice.create_category(
                name.strip(), description=description, color=color
            )
        except BackOfficeError as exc:
            raise MutationError("create_category", f"Failed to create category: {exc}") from exc
        self.categories.append(category)
        return category

    async def download(self, document_id: int) -> bytes:
        return await self.backoffice.download_document(document_id)


class Workspace:
    """The documents screen: one shared cache, one open property at a time."""

    def __init__(self, backoffice: BackOffice, *, settings: Optional[BackOfficeSettings] = None):
        self.backoffice = backoffice
        self.settings = settings or get_settings()
        self.cache = DocumentCache()
        self.session: Optional[PropertySession] = None

    async def open_property(self, prop: Union[int, Property]) -> PropertySession:
        property_id = prop.id if isinstance(prop, Property) else int(prop)
        self.cache.invalidate_all()
        session = PropertySession(
            property_id, self.backoffice, cache=self.cache, settings=self.settings
        )
        self.session = session
        logger.info("opening property %s", property_id, extra={"property_id": property_id})
        await session.open()
        return session

    def close_property(self) -> None:
        self.session = None
        self.cache.invalidate_all()
