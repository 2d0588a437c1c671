"""Batch-scoped cache of supplier offers per product.

One OfferCache is created per picklist batch and discarded afterwards, so
prices never leak between unrelated requests or users. The cache is bounded
and evicts the oldest entry first (FIFO).
"""

import logging
import threading
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from .ports import SupplierPriceOffer, SupplierPriceStore, offer_sort_key

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000


class OfferCache:
    """Bounded FIFO cache mapping product_id to its offers.

    Thread-safe so a batch can be processed by several worker threads.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[int, Tuple[SupplierPriceOffer, ...]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, product_id: int) -> Optional[Tuple[SupplierPriceOffer, ...]]:
        with self._lock:
            offers = self._entries.get(product_id)
            if offers is None:
                self.misses += 1
            else:
                self.hits += 1
            return offers

    def put(self, product_id: int, offers: List[SupplierPriceOffer]) -> None:
        with self._lock:
            if product_id not in self._entries and len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
                self.evictions += 1
            self._entries[product_id] = tuple(offers)

    def __contains__(self, product_id: int) -> bool:
        with self._lock:
            return product_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


CacheFactory = Callable[[], OfferCache]


class CachedOfferLookup:
    """Read-through access to supplier offers for one batch.

    Offers are always returned sorted by price ascending, whatever order the
    store produced them in.
    """

    def __init__(self, store: SupplierPriceStore, cache: Optional[OfferCache] = None):
        self.store = store
        self.cache = cache if cache is not None else OfferCache()

    def offers_for(self, product_id: int) -> List[SupplierPriceOffer]:
        """Get offers for a product, loading them lazily on first use.

        Args:
            product_id: Catalog product ID

        Returns:
            Offers sorted by price ascending

        Raises:
            StoreUnavailable: If the price store fails on a cache miss
        """
        cached = self.cache.get(product_id)
        if cached is not None:
            return list(cached)

        offers = sorted(self.store.get_offers_for_product(product_id), key=offer_sort_key)
        self.cache.put(product_id, offers)
        logger.debug(f"Loaded {len(offers)} offers for product {product_id}", extra={"product_id": product_id})
        return offers

    def cheapest(self, product_id: int) -> Optional[SupplierPriceOffer]:
        offers = self.offers_for(product_id)
        return offers[0] if offers else None

    def offer_from(self, product_id: int, supplier_id: int) -> Optional[SupplierPriceOffer]:
        """Offer of one supplier for a product, or None if it has none."""
        for offer in self.offers_for(product_id):
            if offer.supplier_id == supplier_id:
                return offer
        return None
