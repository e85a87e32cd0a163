from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..models import Document, DocumentFilters, Unit
from .cache import DocumentCache
from .resolver import DocumentResolver, Resolution

logger = logging.getLogger(__name__)


@dataclass
class LoadReport:
    property_id: int
    resolutions: dict[str, Resolution] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    # keys whose write was discarded because the cache moved on
    dropped: list[str] = field(default_factory=list)

    @property
    def documents(self) -> dict[str, list[Document]]:
        out = {key: res.documents for key, res in self.resolutions.items()}
        out.update({key: [] for key in self.failures})
        return out


class BulkAssociationLoader:
    """Resolves every unit of a property concurrently and fills the cache.

    All units are requested at once, without a concurrency cap. A unit whose
    resolution raises gets an empty entry and a recorded failure; its siblings
    are unaffected.

    With ``drop_superseded`` off (the default) a load that finishes after the
    cache was cleared still writes its results: last write wins.
    """

    def __init__(
        self,
        resolver: DocumentResolver,
        cache: DocumentCache,
        *,
        drop_superseded: bool = False,
    ):
        self.resolver = resolver
        self.cache = cache
        self.drop_superseded = drop_superseded

    def _store(self, report: LoadReport, key: str, documents: list[Document], epoch: int) -> None:
        if self.drop_superseded and self.cache.epoch != epoch:
            logger.debug(
                "dropping superseded result for %s",
                key,
                extra={"property_id": report.property_id, "unit": key},
            )
            report.dropped.append(key)
            return
        self.cache.set(key, documents)

    async def _settle(
        self,
        report: LoadReport,
        unit: Unit,
        filters: Optional[DocumentFilters],
        epoch: int,
    ) -> None:
        try:
            resolution = await self.resolver.resolve_outcome(report.property_id, unit, filters)
        except Exception as exc:
            logger.exception(
                "resolving documents for %s failed",
                unit.key,
                extra={"property_id": report.property_id, "unit": unit.key},
            )
            report.failures[unit.key] = exc
            self._store(report, unit.key, [], epoch)
            return
        report.resolutions[unit.key] = resolution
        self._store(report, unit.key, resolution.documents, epoch)

    async def load_all(
        self,
        property_id: int,
        units: Sequence[Unit],
        filters: Optional[DocumentFilters] = None,
    ) -> LoadReport:
        report = LoadReport(property_id=property_id)
        epoch = self.cache.epoch
        await asyncio.gather(*(self._settle(report, unit, filters, epoch) for unit in units))
        if report.failures:
            logger.warning(
                "%d of %d units failed to resolve",
                len(report.failures),
                len(units),
                extra={"property_id": property_id},
            )
        return report
