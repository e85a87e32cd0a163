"""Tests for the per-unit document cache."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from estate_docs.documents.cache import CacheState, DocumentCache
from estate_docs.models import Document


def _doc(doc_id: int) -> Document:
    return Document(id=doc_id, property_id=42, title=f"doc {doc_id}")


@pytest.mark.cache
class TestDocumentCache:
    def test_miss_is_none_and_empty_hit_is_list(self):
        cache = DocumentCache()
        assert cache.get("plot:1") is None
        assert cache.state("plot:1") is CacheState.MISS

        cache.set("plot:1", [])
        assert cache.get("plot:1") == []
        assert cache.state("plot:1") is CacheState.HIT

    def test_invalidate_marks_stale_and_reads_as_miss(self):
        cache = DocumentCache()
        cache.set("plot:1", [_doc(1)])

        cache.invalidate("plot:1")

        assert cache.get("plot:1") is None
        assert cache.state("plot:1") is CacheState.STALE

    def test_invalidate_unknown_key_stays_miss(self):
        cache = DocumentCache()
        cache.invalidate("plot:404")
        assert cache.state("plot:404") is CacheState.MISS

    def test_invalidate_all_clears_and_bumps_epoch(self):
        cache = DocumentCache()
        cache.set("plot:1", [_doc(1)])
        cache.set("block:1", [])

        cache.invalidate_all()

        assert len(cache) == 0
        assert cache.epoch == 1
        assert cache.state("plot:1") is CacheState.STALE
        assert cache.state("block:1") is CacheState.STALE

    def test_set_after_invalidate_is_hit_again(self):
        cache = DocumentCache()
        cache.set("plot:1", [_doc(1)])
        cache.invalidate("plot:1")
        cache.set("plot:1", [_doc(2)])
        assert cache.state("plot:1") is CacheState.HIT
        assert [d.id for d in cache.get("plot:1")] == [2]

    def test_entries_are_snapshots(self):
        cache = DocumentCache()
        docs = [_doc(1)]
        cache.set("plot:1", docs)

        docs.append(_doc(2))
        cache.get("plot:1").append(_doc(3))

        assert [d.id for d in cache.get("plot:1")] == [1]

    def test_counts(self):
        cache = DocumentCache()
        cache.set("plot:1", [_doc(1), _doc(2)])
        cache.set("block:3", [])
        assert cache.counts() == {"plot:1": 2, "block:3": 0}


@pytest.mark.cache
@pytest.mark.asyncio
class TestReadThrough:
    async def test_only_a_miss_calls_the_loader(self):
        cache = DocumentCache()
        loader = AsyncMock(return_value=[_doc(1)])

        first = await cache.get_or_load("plot:1", loader)
        second = await cache.get_or_load("plot:1", loader)

        assert [d.id for d in first] == [1]
        assert second == first
        loader.assert_awaited_once()

    async def test_empty_hit_is_not_refetched(self):
        cache = DocumentCache()
        loader = AsyncMock(return_value=[])

        await cache.get_or_load("plot:1", loader)
        await cache.get_or_load("plot:1", loader)

        loader.assert_awaited_once()

    async def test_invalidate_triggers_exactly_one_reload(self):
        cache = DocumentCache()
        loader = AsyncMock(side_effect=[[_doc(1)], [_doc(2)]])
        await cache.get_or_load("plot:1", loader)

        cache.invalidate("plot:1")
        reloaded = await cache.get_or_load("plot:1", loader)
        again = await cache.get_or_load("plot:1", loader)

        assert [d.id for d in reloaded] == [2]
        assert [d.id for d in again] == [2]
        assert loader.await_count == 2
