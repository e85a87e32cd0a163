from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Hashable, Iterator, Optional

from ..models import Document

logger = logging.getLogger(__name__)

# entry for documents resolved without a unit
PROPERTY_KEY = "property"


class CacheState(str, Enum):
    MISS = "miss"
    HIT = "hit"
    STALE = "stale"


class DocumentCache:
    """Resolved document lists keyed per unit.

    ``get`` returns ``None`` for a miss and a list (possibly empty) for a hit;
    an empty hit means "confirmed no documents" and is not refetched until
    invalidated. Entries are replaced whole, never patched in place.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, tuple[Document, ...]] = {}
        self._stale: set[Hashable] = set()
        # bumped by invalidate_all; lets writers notice they were superseded
        self.epoch = 0

    def get(self, key: Hashable) -> Optional[list[Document]]:
        entry = self._entries.get(key)
        return None if entry is None else list(entry)

    def set(self, key: Hashable, documents: list[Document]) -> None:
        self._entries[key] = tuple(documents)
        self._stale.discard(key)

    def invalidate(self, key: Hashable) -> None:
        if self._entries.pop(key, None) is not None:
            self._stale.add(key)

    def invalidate_all(self) -> None:
        self._stale.update(self._entries)
        self._entries.clear()
        self.epoch += 1
        logger.debug("document cache cleared (epoch %d)", self.epoch)

    def state(self, key: Hashable) -> CacheState:
        if key in self._entries:
            return CacheState.HIT
        if key in self._stale:
            return CacheState.STALE
        return CacheState.MISS

    async def get_or_load(
        self, key: Hashable, loader: Callable[[], Awaitable[list[Document]]]
    ) -> list[Document]:
        cached = self.get(key)
        if cached is not None:
            return cached
        documents = await loader()
        self.set(key, documents)
        return list(documents)

    def counts(self) -> dict[Hashable, int]:
        return {key: len(docs) for key, docs in self._entries.items()}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
