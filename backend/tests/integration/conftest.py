"""Fixtures for SQL repository tests on an in-memory SQLite database.

Every test gets a fresh database with foreign keys enforced, seeded with
the same nail-supply catalog as the in-memory fixtures.
"""

import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from database import create_schema, get_db_session, get_session_factory
from models.catalog import Product, Supplier, SupplierPrice

CATALOG_ROWS = [
    ("OPI GelColor - Big Apple Red 0.5 oz", "Nail Supply Co", "12.99"),
    ("CND Shellac Gel Polish - Wildfire", "Nail Supply Co", "14.50"),
    ("CND Shellac Gel Polish - Wildfire", "Beauty Wholesale", "13.75"),
    ("Kolinsky Acrylic Brush Size 8", "Beauty Wholesale", "22.00"),
    ("Kolinsky Acrylic Brush Size 8", "Pro Nail Depot", "19.50"),
    ("Double Ended Dotting Tool Set", "Pro Nail Depot", "6.25"),
    ("Cuticle Oil Almond 4 oz", "Nail Supply Co", "5.00"),
    ("Cuticle Oil Almond 4 oz", "Beauty Wholesale", "4.50"),
    ("Cuticle Oil Almond 4 oz", "Pro Nail Depot", "4.75"),
    ("Cuticle Oil Almond 4 oz", "Salon Direct", "5.25"),
    ("Top Coat 100% Shine", "Salon Direct", "7.00"),
]


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by all sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def seeded(session_factory) -> SimpleNamespace:
    """Insert the catalog and return product/supplier IDs by short name."""
    products = {}
    suppliers = {}
    with get_db_session(session_factory) as session:
        for description, supplier_name, price in CATALOG_ROWS:
            if description not in products:
                products[description] = Product(description=description)
                session.add(products[description])
            if supplier_name not in suppliers:
                suppliers[supplier_name] = Supplier(name=supplier_name)
                session.add(suppliers[supplier_name])
            session.flush()
            session.add(SupplierPrice(
                product_id=products[description].id,
                supplier_id=suppliers[supplier_name].id,
                price=Decimal(price),
            ))

    return SimpleNamespace(
        opi_red=products["OPI GelColor - Big Apple Red 0.5 oz"].id,
        cnd_wildfire=products["CND Shellac Gel Polish - Wildfire"].id,
        kolinsky_brush=products["Kolinsky Acrylic Brush Size 8"].id,
        dotting_tool=products["Double Ended Dotting Tool Set"].id,
        cuticle_oil=products["Cuticle Oil Almond 4 oz"].id,
        top_coat=products["Top Coat 100% Shine"].id,
        nail_supply=suppliers["Nail Supply Co"].id,
        beauty_wholesale=suppliers["Beauty Wholesale"].id,
        pro_nail=suppliers["Pro Nail Depot"].id,
        salon_direct=suppliers["Salon Direct"].id,
    )
