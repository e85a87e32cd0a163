"""Subordinate units of a property, merged from three independent sources."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from ..backoffice.base import BackOffice
from ..exceptions import BackOfficeError
from ..models import Block, LandPlot, Plot, Unit, UnitKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class UnitSet:
    property_id: int
    plots: list[Plot] = field(default_factory=list)
    land_plots: list[LandPlot] = field(default_factory=list)
    blocks: list[Block] = field(default_factory=list)
    # sources that failed and were degraded to an empty list
    failed_sources: list[UnitKind] = field(default_factory=list)

    def all(self) -> list[Unit]:
        return [*self.plots, *self.land_plots, *self.blocks]

    def find(self, key: str) -> Optional[Unit]:
        for unit in self.all():
            if unit.key == key:
                return unit
        return None

    def __len__(self) -> int:
        return len(self.plots) + len(self.land_plots) + len(self.blocks)

    def __iter__(self):
        return iter(self.all())


class UnitCatalog:
    """Loads plots, land plots and block configurations for a property.

    The three lookups run concurrently and independently; a failing source
    degrades to an empty list instead of failing the whole catalog.
    """

    def __init__(self, backoffice: BackOffice):
        self.backoffice = backoffice

    async def _source(
        self,
        kind: UnitKind,
        fetch: Callable[[int], Awaitable[list[T]]],
        property_id: int,
        failed: list[UnitKind],
    ) -> list[T]:
        try:
            return await fetch(property_id)
        except BackOfficeError as exc:
            logger.warning(
                "%s source failed for property %s, treating as empty: %s",
                kind.value,
                property_id,
                exc,
                extra={"property_id": property_id},
            )
            failed.append(kind)
            return []

    async def load_units(self, property_id: int) -> UnitSet:
        failed: list[UnitKind] = []
        plots, land_plots, blocks = await asyncio.gather(
            self._source(UnitKind.PLOT, self.backoffice.list_plots, property_id, failed),
            self._source(UnitKind.LAND_PLOT, self.backoffice.list_land_plots, property_id, failed),
            self._source(UnitKind.BLOCK, self.backoffice.list_blocks, property_id, failed),
        )
        units = UnitSet(
            property_id=property_id,
            plots=plots,
            land_plots=land_plots,
            blocks=blocks,
            failed_sources=failed,
        )
        logger.debug(
            "property %s: %d plots, %d land plots, %d blocks",
            property_id,
            len(plots),
            len(land_plots),
            len(blocks),
            extra={"property_id": property_id},
        )
        return units
