"""Tiered lookup of the documents that belong to a unit.

Documents are associated with a unit through one of two identities that are
not required to agree:

* ``plot_number``, the business key, preferred for everything uploaded now;
* ``plot_id``, the unit's database id, which is all older records carry.

Resolution runs an ordered list of strategies, one request each, strictly in
sequence. The first strategy that finds documents wins:

1. ``BUSINESS_KEY``: ``{property_id, plot_number}`` when the unit has a number.
2. ``LEGACY_ID``: ``{plot_id}`` when nothing was found yet and the unit has an id.
3. ``PROPERTY``: ``{property_id}`` when there is no unit at all, or when an
   earlier tier failed. A transport error is never reported as "no documents"
   without trying the broad lookup first.

Each tier yields ``Found``, ``NotFound`` or ``Transient`` so that a confirmed
empty result stays distinguishable from a failed lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Sequence, Union

from ..backoffice.base import BackOffice
from ..exceptions import BackOfficeError
from ..models import Document, DocumentFilters, DocumentQuery, Unit

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    BUSINESS_KEY = "business_key"
    LEGACY_ID = "legacy_id"
    PROPERTY = "property"


class Outcome(str, Enum):
    FOUND = "found"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class Found:
    documents: list[Document]


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Transient:
    error: BackOfficeError


TierResult = Union[Found, NotFound, Transient]


@dataclass(frozen=True)
class TierAttempt:
    tier: Tier
    query: DocumentQuery
    result: TierResult


@dataclass
class Resolution:
    property_id: int
    unit: Optional[Unit]
    documents: list[Document] = field(default_factory=list)
    tier: Optional[Tier] = None
    attempts: list[TierAttempt] = field(default_factory=list)

    @property
    def outcome(self) -> Outcome:
        if self.documents:
            return Outcome.FOUND
        if self.attempts and all(isinstance(a.result, Transient) for a in self.attempts):
            return Outcome.FAILED
        return Outcome.EMPTY

    @property
    def errors(self) -> list[BackOfficeError]:
        return [a.result.error for a in self.attempts if isinstance(a.result, Transient)]


class TierStrategy(Protocol):
    """One lookup step: whether it runs for this unit, and the query it sends."""

    tier: Tier

    def applies(self, unit: Optional[Unit], attempts: Sequence[TierAttempt]) -> bool:
        ...

    def query(
        self, property_id: int, unit: Optional[Unit], filters: DocumentFilters, limit: int
    ) -> DocumentQuery:
        ...


class BusinessKeyTier(TierStrategy):
    tier = Tier.BUSINESS_KEY

    def applies(self, unit: Optional[Unit], attempts: Sequence[TierAttempt]) -> bool:
        return unit is not None and bool(unit.business_key)

    def query(
        self, property_id: int, unit: Optional[Unit], filters: DocumentFilters, limit: int
    ) -> DocumentQuery:
        return DocumentQuery.build(
            filters, property_id=property_id, plot_number=unit.business_key, limit=limit
        )


class LegacyIdTier(TierStrategy):
    tier = Tier.LEGACY_ID

    def applies(self, unit: Optional[Unit], attempts: Sequence[TierAttempt]) -> bool:
        return unit is not None and unit.id is not None

    def query(
        self, property_id: int, unit: Optional[Unit], filters: DocumentFilters, limit: int
    ) -> DocumentQuery:
        # plot_id alone: legacy rows are matched across the whole table
        return DocumentQuery.build(filters, plot_id=unit.id, limit=limit)


class PropertyTier(TierStrategy):
    tier = Tier.PROPERTY

    def applies(self, unit: Optional[Unit], attempts: Sequence[TierAttempt]) -> bool:
        if unit is None:
            return True
        return any(isinstance(a.result, Transient) for a in attempts)

    def query(
        self, property_id: int, unit: Optional[Unit], filters: DocumentFilters, limit: int
    ) -> DocumentQuery:
        return DocumentQuery.build(filters, property_id=property_id, limit=limit)


DEFAULT_TIERS: tuple[TierStrategy, ...] = (BusinessKeyTier(), LegacyIdTier(), PropertyTier())


class DocumentResolver:
    def __init__(
        self,
        backoffice: BackOffice,
        *,
        tier_limit: int = 50,
        property_limit: int = 200,
        tiers: Sequence[TierStrategy] = DEFAULT_TIERS,
    ):
        self.backoffice = backoffice
        self.tier_limit = tier_limit
        self.property_limit = property_limit
        self.tiers = tuple(tiers)

    def _limit(self, tier: Tier) -> int:
        return self.property_limit if tier is Tier.PROPERTY else self.tier_limit

    async def _run(self, query: DocumentQuery) -> TierResult:
        try:
            page = await self.backoffice.list_documents(query)
        except BackOfficeError as exc:
            return Transient(exc)
        if page.documents:
            return Found(list(page.documents))
        return NotFound()

    async def resolve_outcome(
        self,
        property_id: int,
        unit: Optional[Unit] = None,
        filters: Optional[DocumentFilters] = None,
    ) -> Resolution:
        filters = filters or DocumentFilters()
        resolution = Resolution(property_id=property_id, unit=unit)
        log_ctx = {"property_id": property_id, "unit": unit.key if unit else None}

        for strategy in self.tiers:
            if not strategy.applies(unit, resolution.attempts):
                continue
            query = strategy.query(property_id, unit, filters, self._limit(strategy.tier))
            result = await self._run(query)
            resolution.attempts.append(TierAttempt(strategy.tier, query, result))

            if isinstance(result, Found):
                resolution.documents = result.documents
                resolution.tier = strategy.tier
                logger.debug(
                    "%d documents via %s",
                    len(result.documents),
                    strategy.tier.value,
                    extra={**log_ctx, "tier": strategy.tier.value},
                )
                return resolution
            if isinstance(result, Transient):
                logger.warning(
                    "%s lookup failed: %s",
                    strategy.tier.value,
                    result.error,
                    extra={**log_ctx, "tier": strategy.tier.value},
                )

        logger.debug(
            "no documents after %d tier(s)",
            len(resolution.attempts),
            extra={**log_ctx, "outcome": resolution.outcome.value},
        )
        return resolution

    async def resolve(
        self,
        property_id: int,
        unit: Optional[Unit] = None,
        filters: Optional[DocumentFilters] = None,
    ) -> list[Document]:
        return (await self.resolve_outcome(property_id, unit, filters)).documents
