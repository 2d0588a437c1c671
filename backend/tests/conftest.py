"""Pytest fixtures for picklist engine tests.

Provides reusable test fixtures for:
- A controllable clock
- A small nail-supply catalog in memory
- In-memory catalog, price and preference stores

Usage:
    def test_match(catalog_store):
        matcher = CatalogMatcher(catalog_store)
        assert matcher.match("OPI Gel Color - Red Hot") is not None
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from infrastructure.memory_stores import (
    InMemoryCatalog,
    InMemoryCatalogStore,
    InMemoryPreferenceStore,
    InMemorySupplierPriceStore,
)

FIXED_NOW = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock returning a settable aware UTC time."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, seconds: float = 0) -> None:
        self.now = self.now + timedelta(days=days, seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2026-10-01 12:00 UTC that tests can move."""
    return FakeClock()


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """Nail-supply catalog with single- and multi-supplier products.

    Products:
        1 OPI GelColor - Big Apple Red 0.5 oz   Nail Supply Co 12.99
        2 CND Shellac Gel Polish - Wildfire      Nail Supply Co 14.50, Beauty Wholesale 13.75
        3 Kolinsky Acrylic Brush Size 8          Beauty Wholesale 22.00, Pro Nail Depot 19.50
        4 Double Ended Dotting Tool Set          Pro Nail Depot 6.25
        5 Cuticle Oil Almond 4 oz                four suppliers, 4.50 - 5.25
    """
    data = InMemoryCatalog()
    data.add_offer("OPI GelColor - Big Apple Red 0.5 oz", "Nail Supply Co", "12.99")
    data.add_offer("CND Shellac Gel Polish - Wildfire", "Nail Supply Co", "14.50")
    data.add_offer("CND Shellac Gel Polish - Wildfire", "Beauty Wholesale", "13.75")
    data.add_offer("Kolinsky Acrylic Brush Size 8", "Beauty Wholesale", "22.00")
    data.add_offer("Kolinsky Acrylic Brush Size 8", "Pro Nail Depot", "19.50")
    data.add_offer("Double Ended Dotting Tool Set", "Pro Nail Depot", "6.25")
    data.add_offer("Cuticle Oil Almond 4 oz", "Nail Supply Co", "5.00")
    data.add_offer("Cuticle Oil Almond 4 oz", "Beauty Wholesale", "4.50")
    data.add_offer("Cuticle Oil Almond 4 oz", "Pro Nail Depot", "4.75")
    data.add_offer("Cuticle Oil Almond 4 oz", "Salon Direct", "5.25")
    return data


@pytest.fixture
def catalog_store(catalog) -> InMemoryCatalogStore:
    return InMemoryCatalogStore(catalog)


@pytest.fixture
def price_store(catalog) -> InMemorySupplierPriceStore:
    return InMemorySupplierPriceStore(catalog)


@pytest.fixture
def preference_store(catalog, clock) -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore(catalog, clock=clock)


@pytest.fixture
def ids(catalog) -> SimpleNamespace:
    """Product and supplier IDs of the catalog fixture by short name."""
    def product(prefix):
        return next(pid for pid, description in catalog.products.items() if description.startswith(prefix))

    def supplier(name):
        return next(sid for sid, supplier_name in catalog.suppliers.items() if supplier_name == name)

    return SimpleNamespace(
        opi_red=product("OPI GelColor"),
        cnd_wildfire=product("CND Shellac"),
        kolinsky_brush=product("Kolinsky"),
        dotting_tool=product("Double Ended"),
        cuticle_oil=product("Cuticle Oil"),
        nail_supply=supplier("Nail Supply Co"),
        beauty_wholesale=supplier("Beauty Wholesale"),
        pro_nail=supplier("Pro Nail Depot"),
        salon_direct=supplier("Salon Direct"),
    )
