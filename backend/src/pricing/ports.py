"""Supplier price ports and value types.

The engine reads supplier offers through SupplierPriceStore; concrete
adapters live in infrastructure/.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class Supplier:
    """Supplier master record.

    Attributes:
        id: Supplier ID
        name: Supplier display name (unique, case-insensitive)
    """
    id: int
    name: str


@dataclass(frozen=True)
class SupplierPriceOffer:
    """One supplier's current price for one product.

    Attributes:
        supplier_id: Supplier ID
        supplier_name: Supplier display name
        product_id: Catalog product ID
        price: Non-negative unit price
    """
    supplier_id: int
    supplier_name: str
    product_id: int
    price: Decimal

    def to_dict(self) -> dict:
        """Convert offer to dictionary representation."""
        return {
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "product_id": self.product_id,
            "price": str(self.price),
        }


def offer_sort_key(offer: SupplierPriceOffer):
    """Deterministic price-ascending ordering for offers."""
    return (offer.price, offer.supplier_name.lower(), offer.supplier_id)


class SupplierPriceStore(ABC):
    """Port interface for supplier and price lookups."""

    @abstractmethod
    def get_offers_for_product(self, product_id: int) -> List[SupplierPriceOffer]:
        """Get all offers for a product.

        Args:
            product_id: Catalog product ID

        Returns:
            Offers sorted by price ascending (empty list if none)

        Raises:
            StoreUnavailable: If the store cannot be reached
        """
        pass

    @abstractmethod
    def get_supplier_by_name(self, name: str) -> Optional[Supplier]:
        """Find a supplier by case-insensitive name."""
        pass

    @abstractmethod
    def get_supplier_by_id(self, supplier_id: int) -> Optional[Supplier]:
        """Find a supplier by ID."""
        pass
