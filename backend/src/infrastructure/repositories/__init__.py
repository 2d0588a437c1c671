"""SQLAlchemy implementations of the store ports"""

from .catalog_repository import SQLCatalogStore
from .supplier_price_repository import SQLSupplierPriceStore
from .preference_repository import SQLPreferenceStore

__all__ = [
    "SQLCatalogStore",
    "SQLSupplierPriceStore",
    "SQLPreferenceStore",
]
