"""SQLAlchemy models for the picklist engine"""

from .base import Base
from .catalog import Product, Supplier, SupplierPrice
from .preference import ANY_PRODUCT_KEY, ItemPreference, SupplierPreference

__all__ = [
    "Base",
    "Product",
    "Supplier",
    "SupplierPrice",
    "ItemPreference",
    "SupplierPreference",
    "ANY_PRODUCT_KEY",
]
