"""
Root conftest.py for estate-docs tests.

Provides:
1. Marker registration
2. An in-memory back office seeded with a small property
3. Settings tuned for tests
"""

from __future__ import annotations

import pytest

from estate_docs.app.settings import BackOfficeSettings
from estate_docs.backoffice.memory import InMemoryBackOffice
from estate_docs.models import Block, LandPlot, Plot


def pytest_configure(config):
    for name, desc in [
        ("resolver", "Tiered document resolution"),
        ("cache", "Document cache and invalidation"),
        ("concurrency", "Fan-out/fan-in and staleness"),
        ("acceptance", "End-to-end scenarios"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture
def settings() -> BackOfficeSettings:
    return BackOfficeSettings(base_url="http://backoffice.test/api", timeout_seconds=1.0)


# =============================================================================
# BACK OFFICE
# =============================================================================


@pytest.fixture
def backoffice() -> InMemoryBackOffice:
    return InMemoryBackOffice()


@pytest.fixture
def units():
    """Units of property 42: two plots, one land plot, one block."""
    return {
        "plot_a": Plot(id=1, plot_number="P-1"),
        "plot_b": Plot(id=2, plot_number="P-2"),
        "land": LandPlot(id=7, plot_number="A-101", block_id=3),
        "block": Block(id=3, name="Block C"),
    }


@pytest.fixture
def seeded(backoffice: InMemoryBackOffice, units) -> InMemoryBackOffice:
    """Property 42 with a mix of new-style, legacy and block documents."""
    backoffice.add_category("Legal", color="#ff0000", id=1)
    backoffice.add_category("Plans", color="#00ff00", id=2)
    backoffice.add_units(
        42,
        plots=[units["plot_a"], units["plot_b"]],
        land_plots=[units["land"]],
        blocks=[units["block"]],
    )
    # tagged with both identities
    backoffice.add_document(id=100, property_id=42, title="Sale deed P-1", plot_number="P-1", plot_id=1, category_id=1)
    backoffice.add_document(id=101, property_id=42, title="Survey P-1", plot_number="P-1", plot_id=1, category_id=2)
    # legacy: plot_id only
    backoffice.add_document(id=102, property_id=42, title="Old allotment letter", plot_id=7, category_id=1)
    # block documents are only reachable by id
    backoffice.add_document(id=103, property_id=42, title="Block C layout", plot_id=3, category_id=2)
    # property-level, no unit
    backoffice.add_document(id=104, property_id=42, title="Master plan approval", category_id=2)
    return backoffice
