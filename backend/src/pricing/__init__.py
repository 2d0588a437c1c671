"""Pricing module: supplier price ports and the batch-scoped offer cache.

The supplier decision engine lives in pricing.decision.
"""

from .ports import Supplier, SupplierPriceOffer, SupplierPriceStore, offer_sort_key
from .offer_cache import CachedOfferLookup, OfferCache

__all__ = [
    "Supplier",
    "SupplierPriceOffer",
    "SupplierPriceStore",
    "offer_sort_key",
    "CachedOfferLookup",
    "OfferCache",
]
