"""Tests for PropertySession panel states and the Workspace property switch."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from estate_docs.app.settings import BackOfficeSettings
from estate_docs.documents.cache import PROPERTY_KEY, CacheState
from estate_docs.exceptions import MutationError
from estate_docs.models import DocumentFilters, DocumentUpdate, Property
from estate_docs.session import PanelState, PropertySession, Workspace


async def _wait_for(condition, rounds: int = 200) -> None:
    for _ in range(rounds):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest_asyncio.fixture
async def session(seeded, settings) -> PropertySession:
    session = PropertySession(42, seeded, settings=settings)
    await session.open()
    return session


@pytest.mark.asyncio
class TestOpen:
    async def test_open_loads_units_categories_and_counts(self, session):
        assert len(session.units) == 4
        assert [c.name for c in session.categories] == ["Legal", "Plans"]
        assert session.document_counts() == {"plot:1": 2, "plot:2": 0, "land_plot:7": 1, "block:3": 1}
        assert session.last_report is not None

    async def test_category_failure_does_not_block_open(self, seeded, settings):
        seeded.fail("list_categories")
        session = PropertySession(42, seeded, settings=settings)

        await session.open()

        assert session.categories == []
        assert len(session.units) == 4

    async def test_counts_are_none_before_resolution(self, seeded, settings):
        session = PropertySession(42, seeded, settings=settings)
        session.units = await session.catalog.load_units(42)

        assert set(session.document_counts().values()) == {None}


@pytest.mark.asyncio
class TestPanelStates:
    async def test_collapsed_until_expanded(self, session, units):
        assert session.panel_state(units["plot_a"]) is PanelState.COLLAPSED

    async def test_expand_reads_from_cache(self, session, seeded, units):
        before = len(seeded.queries)

        docs = await session.expand(units["plot_a"])

        assert [d.id for d in docs] == [101, 100]
        assert session.panel_state(units["plot_a"]) is PanelState.LOADED
        assert len(seeded.queries) == before

    async def test_confirmed_empty_panel(self, session, units):
        await session.expand(units["plot_b"])
        assert session.panel_state(units["plot_b"]) is PanelState.EMPTY

    async def test_failed_resolution_shows_error_not_empty(self, seeded, settings, units):
        seeded.fail("list_documents")
        session = PropertySession(42, seeded, settings=settings)
        await session.open()

        docs = await session.expand(units["plot_a"])

        assert docs == []
        assert session.panel_state(units["plot_a"]) is PanelState.ERROR

    async def test_loading_while_resolution_is_in_flight(self, seeded, settings, units):
        session = PropertySession(42, seeded, settings=settings)
        release = seeded.hold("list_documents")

        task = asyncio.create_task(session.expand(units["plot_a"]))
        await _wait_for(lambda: len(seeded.queries) == 1)
        assert session.panel_state(units["plot_a"]) is PanelState.LOADING

        release.set()
        await task
        assert session.panel_state(units["plot_a"]) is PanelState.LOADED

    async def test_collapse(self, session, units):
        await session.expand(units["plot_a"])
        session.collapse(units["plot_a"])
        assert session.panel_state(units["plot_a"]) is PanelState.COLLAPSED

    async def test_edit_without_refetch_drops_loaded_panel(self, session, units):
        await session.expand(units["plot_a"])

        await session.mutations.update(100, DocumentUpdate(category_id=2), refetch=False)

        assert session.cache.state("plot:1") is CacheState.STALE
        assert session.panel_state(units["plot_a"]) is PanelState.COLLAPSED

        await session.refetch()
        assert session.panel_state(units["plot_a"]) is PanelState.LOADED

    async def test_delete_without_refetch_drops_error_panel(self, seeded, settings, units):
        seeded.fail("list_documents")
        session = PropertySession(42, seeded, settings=settings)
        await session.open()
        await session.expand(units["plot_a"])
        assert session.panel_state(units["plot_a"]) is PanelState.ERROR

        await session.mutations.delete(100, refetch=False)

        assert session.panel_state(units["plot_a"]) is PanelState.COLLAPSED

    async def test_invalidate_all_clears_outcomes(self, session, units):
        await session.expand(units["plot_b"])

        session.invalidate_all()

        assert session.cache.get("plot:2") is None
        assert session.panel_state(units["plot_b"]) is PanelState.COLLAPSED

    async def test_property_panel_uses_broad_lookup(self, session, seeded):
        docs = await session.expand(None)

        assert len(docs) == 5
        assert seeded.queries[-1].identity() == {"property_id": 42}
        assert session.panel_state(None) is PanelState.LOADED
        assert session.cache.state(PROPERTY_KEY) is CacheState.HIT


@pytest.mark.cache
@pytest.mark.asyncio
class TestReadThrough:
    async def test_only_a_miss_triggers_resolution(self, session, seeded, units):
        before = len(seeded.queries)
        await session.documents_for(units["plot_a"])
        assert len(seeded.queries) == before

        session.cache.invalidate("plot:1")
        docs = await session.documents_for(units["plot_a"])

        assert [d.id for d in docs] == [101, 100]
        assert len(seeded.queries) == before + 1

    async def test_empty_hit_is_not_refetched(self, session, seeded, units):
        before = len(seeded.queries)
        assert await session.documents_for(units["plot_b"]) == []
        assert len(seeded.queries) == before


@pytest.mark.cache
@pytest.mark.asyncio
class TestFilters:
    async def test_filter_change_invalidates_and_reloads(self, session, seeded):
        epoch = session.cache.epoch

        await session.set_filters(DocumentFilters(category=2))

        assert session.cache.epoch == epoch + 1
        assert session.document_counts() == {"plot:1": 1, "plot:2": 0, "land_plot:7": 0, "block:3": 1}
        assert session.listing.filters.category == 2
        assert all(q.category == 2 for q in seeded.queries[-5:])

    async def test_same_filters_are_a_no_op(self, session, seeded):
        before = len(seeded.queries)
        await session.set_filters(DocumentFilters(search="  "))
        assert len(seeded.queries) == before
        assert session.cache.epoch == 0

    async def test_filter_change_without_reload_leaves_misses(self, session):
        await session.set_filters(DocumentFilters(category=1), reload=False)
        assert set(session.document_counts().values()) == {None}


@pytest.mark.asyncio
class TestCategoriesAndDownload:
    async def test_create_category(self, session):
        category = await session.create_category("  Permits ", color="#123456")

        assert category.name == "Permits"
        assert session.categories[-1] == category

    async def test_blank_category_name_is_rejected(self, session, seeded):
        with pytest.raises(MutationError, match="name is required"):
            await session.create_category(" ")
        assert seeded.calls_to("create_category") == []

    async def test_category_backend_failure(self, session, seeded):
        seeded.fail("create_category")
        with pytest.raises(MutationError) as exc_info:
            await session.create_category("Permits")
        assert exc_info.value.action == "create_category"

    async def test_download(self, session, seeded):
        seeded.files[100] = b"deed"
        assert await session.download(100) == b"deed"


@pytest.mark.concurrency
@pytest.mark.asyncio
class TestWorkspace:
    async def test_open_property_accepts_model(self, seeded, settings):
        workspace = Workspace(seeded, settings=settings)

        session = await workspace.open_property(Property(id=42, title="Green Acres"))

        assert workspace.session is session
        assert session.cache is workspace.cache
        assert workspace.cache.epoch == 1

    async def test_switching_property_clears_cache(self, seeded, settings):
        workspace = Workspace(seeded, settings=settings)
        await workspace.open_property(42)

        await workspace.open_property(43)

        assert workspace.session.property_id == 43
        assert len(workspace.session.units) == 0
        assert workspace.cache.get("plot:1") is None

    async def test_late_results_of_previous_property_land_in_cache(self, seeded, settings):
        workspace = Workspace(seeded, settings=settings)
        release = seeded.hold("list_documents")
        first = asyncio.create_task(workspace.open_property(42))
        await _wait_for(lambda: len(seeded.queries) >= 4)

        await workspace.open_property(43)
        release.set()
        await first

        assert workspace.session.property_id == 43
        # last write wins: property 42's results survive the switch
        assert workspace.cache.state("plot:1") is CacheState.HIT

    async def test_drop_superseded_discards_previous_property_results(self, seeded):
        settings = BackOfficeSettings(
            base_url="http://backoffice.test/api", timeout_seconds=1.0, drop_superseded=True
        )
        workspace = Workspace(seeded, settings=settings)
        release = seeded.hold("list_documents")
        first = asyncio.create_task(workspace.open_property(42))
        await _wait_for(lambda: len(seeded.queries) >= 4)

        await workspace.open_property(43)
        release.set()
        previous = await first

        assert len(workspace.cache) == 0
        assert sorted(previous.last_report.dropped) == ["block:3", "land_plot:7", "plot:1", "plot:2"]

    async def test_close_property(self, seeded, settings):
        workspace = Workspace(seeded, settings=settings)
        await workspace.open_property(42)

        workspace.close_property()

        assert workspace.session is None
        assert len(workspace.cache) == 0
