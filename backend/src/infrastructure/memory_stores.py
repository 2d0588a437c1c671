"""In-memory store adapters.

Used by tests and by embedders that load a catalog snapshot into memory.
All stores are safe to share between the worker threads of one batch.
"""

import copy
import threading
from dataclasses import dataclass, field, replace
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from matching.ports import CatalogCandidate, CatalogStore
from matching.scorer import rank_descriptions
from preferences.ports import (
    ItemPreference,
    PreferenceStore,
    SupplierPreference,
    SupplierPreferenceUpdate,
    preference_key,
    utc_now,
)
from pricing.ports import Supplier, SupplierPriceOffer, SupplierPriceStore, offer_sort_key


@dataclass
class InMemoryCatalog:
    """Catalog snapshot: products, suppliers and prices.

    Example:
        catalog = InMemoryCatalog()
        catalog.add_offer("OPI GelColor - Big Apple Red 0.5 oz", "Nail Supply Co", "12.99")
    """
    products: Dict[int, str] = field(default_factory=dict)
    suppliers: Dict[int, str] = field(default_factory=dict)
    prices: Dict[Tuple[int, int], Decimal] = field(default_factory=dict)

    def add_product(self, description: str, product_id: Optional[int] = None) -> int:
        for existing_id, existing in self.products.items():
            if existing == description and product_id in (None, existing_id):
                return existing_id
        if product_id is None:
            product_id = max(self.products, default=0) + 1
        self.products[product_id] = description
        return product_id

    def add_supplier(self, name: str, supplier_id: Optional[int] = None) -> int:
        for existing_id, existing in self.suppliers.items():
            if existing.lower() == name.lower():
                return existing_id
        if supplier_id is None:
            supplier_id = max(self.suppliers, default=0) + 1
        self.suppliers[supplier_id] = name
        return supplier_id

    def set_price(self, product_id: int, supplier_id: int, price) -> None:
        price = Decimal(str(price))
        if price < 0:
            raise ValueError("price must be non-negative")
        self.prices[(product_id, supplier_id)] = price

    def add_offer(self, description: str, supplier_name: str, price) -> Tuple[int, int]:
        """Add product, supplier and price in one call. Returns (product_id, supplier_id)."""
        product_id = self.add_product(description)
        supplier_id = self.add_supplier(supplier_name)
        self.set_price(product_id, supplier_id, price)
        return product_id, supplier_id

    def offers(self) -> Iterable[CatalogCandidate]:
        for (product_id, supplier_id), price in self.prices.items():
            yield CatalogCandidate(
                product_id=product_id,
                description=self.products[product_id],
                supplier_id=supplier_id,
                supplier_name=self.suppliers[supplier_id],
                price=price,
            )


class InMemoryCatalogStore(CatalogStore):
    """CatalogStore over an InMemoryCatalog using case-insensitive substring tests."""

    def __init__(self, catalog: InMemoryCatalog):
        self.catalog = catalog

    def _where(self, predicate: Callable[[str], bool]) -> List[CatalogCandidate]:
        return [row for row in self.catalog.offers() if predicate(row.description.lower())]

    def search_exact_substring(self, text: str) -> List[CatalogCandidate]:
        text = text.lower()
        return self._where(lambda description: text in description)

    def search_brand_category(
        self,
        brand: str,
        category_filter: Optional[Sequence[str]] = None
    ) -> List[CatalogCandidate]:
        brand = brand.lower()
        keywords = [keyword.lower() for keyword in category_filter or ()]
        return self._where(
            lambda description: brand in description
            and (not keywords or any(keyword in description for keyword in keywords))
        )

    def search_word_set(self, words: Sequence[str], min_matched: int = 2) -> List[CatalogCandidate]:
        ranks = rank_descriptions(words, self.catalog.products.items(), min_matched)
        rows = [replace(row, rank=ranks[row.product_id]) for row in self.catalog.offers() if row.product_id in ranks]
        return sorted(rows, key=lambda row: (-row.rank, row.price, row.product_id))

    def search_single_word(self, words: Sequence[str]) -> List[CatalogCandidate]:
        words = [word.lower() for word in words]
        return self._where(lambda description: any(word in description for word in words))


class InMemorySupplierPriceStore(SupplierPriceStore):
    """SupplierPriceStore over an InMemoryCatalog."""

    def __init__(self, catalog: InMemoryCatalog):
        self.catalog = catalog

    def get_offers_for_product(self, product_id: int) -> List[SupplierPriceOffer]:
        offers = [
            row.offer for row in self.catalog.offers()
            if row.product_id == product_id
        ]
        return sorted(offers, key=offer_sort_key)

    def get_supplier_by_name(self, name: str) -> Optional[Supplier]:
        for supplier_id, supplier_name in self.catalog.suppliers.items():
            if supplier_name.lower() == name.lower():
                return Supplier(id=supplier_id, name=supplier_name)
        return None

    def get_supplier_by_id(self, supplier_id: int) -> Optional[Supplier]:
        name = self.catalog.suppliers.get(supplier_id)
        return Supplier(id=supplier_id, name=name) if name is not None else None


class InMemoryPreferenceStore(PreferenceStore):
    """PreferenceStore kept in dictionaries guarded by one lock.

    Item preferences are keyed by (user_id, casefold(item)); supplier
    preferences by (casefold(item), product_id, supplier_id).
    """

    def __init__(self, catalog: Optional[InMemoryCatalog] = None, clock: Callable = utc_now):
        self.catalog = catalog
        self.clock = clock
        self._lock = threading.Lock()
        self._item_preferences: Dict[Tuple[int, str], ItemPreference] = {}
        self._supplier_preferences: Dict[Tuple[str, Optional[int], int], SupplierPreference] = {}
        self._next_id = 1

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _describe_item(self, preference: ItemPreference) -> ItemPreference:
        if self.catalog is None:
            return preference
        supplier_name = None
        if preference.supplier_id is not None:
            supplier_name = self.catalog.suppliers.get(preference.supplier_id)
        return replace(
            preference,
            product_description=self.catalog.products.get(preference.product_id),
            supplier_name=supplier_name,
        )

    def _describe_supplier(self, preference: SupplierPreference) -> SupplierPreference:
        if self.catalog is None:
            return preference
        return replace(preference, supplier_name=self.catalog.suppliers.get(preference.supplier_id))

    # ---- item preferences -------------------------------------------------

    def get_item_preference(self, user_id: int, original_item: str) -> Optional[ItemPreference]:
        with self._lock:
            preference = self._item_preferences.get((user_id, preference_key(original_item)))
        return self._describe_item(preference) if preference else None

    def get_item_preferences(self, user_id: int, items: Sequence[str]) -> Dict[str, ItemPreference]:
        found = {}
        with self._lock:
            for item in items:
                key = preference_key(item)
                preference = self._item_preferences.get((user_id, key))
                if preference is not None:
                    found[key] = preference
        return {key: self._describe_item(preference) for key, preference in found.items()}

    def list_item_preferences(self, user_id: int) -> List[ItemPreference]:
        with self._lock:
            preferences = [p for (owner, _), p in self._item_preferences.items() if owner == user_id]
        preferences.sort(key=lambda p: (p.last_used, p.frequency), reverse=True)
        return [self._describe_item(p) for p in preferences]

    def upsert_item_preference(
        self,
        user_id: int,
        original_item: str,
        product_id: int,
        supplier_id: Optional[int] = None
    ) -> ItemPreference:
        now = self.clock()
        key = (user_id, preference_key(original_item))
        with self._lock:
            existing = self._item_preferences.get(key)
            if existing is None:
                preference = ItemPreference(
                    id=self._new_id(),
                    user_id=user_id,
                    original_item=original_item,
                    product_id=product_id,
                    supplier_id=supplier_id,
                    frequency=1,
                    last_used=now,
                    created_at=now,
                )
            else:
                preference = replace(
                    existing,
                    original_item=original_item,
                    product_id=product_id,
                    supplier_id=supplier_id,
                    frequency=existing.frequency + 1,
                    last_used=max(existing.last_used, now),
                )
            self._item_preferences[key] = preference
        return self._describe_item(preference)

    def delete_item_preference(self, user_id: int, original_item: str) -> bool:
        with self._lock:
            return self._item_preferences.pop((user_id, preference_key(original_item)), None) is not None

    # ---- supplier preferences ---------------------------------------------

    def get_supplier_preference(
        self,
        original_item: str,
        product_id: Optional[int]
    ) -> Optional[SupplierPreference]:
        item_key = preference_key(original_item)
        with self._lock:
            matches = [
                p for (key, product, _), p in self._supplier_preferences.items()
                if key == item_key and product == product_id
            ]
        if not matches:
            return None
        best = max(matches, key=lambda p: (p.frequency, p.last_used))
        return self._describe_supplier(best)

    def _apply_supplier_upsert(self, table: dict, update: SupplierPreferenceUpdate, now) -> SupplierPreference:
        key = (preference_key(update.original_item), update.product_id, update.supplier_id)
        existing = table.get(key)
        if existing is None:
            preference = SupplierPreference(
                id=self._new_id(),
                original_item=update.original_item,
                product_id=update.product_id,
                supplier_id=update.supplier_id,
                frequency=1,
                last_used=now,
                created_at=now,
            )
        else:
            preference = replace(
                existing,
                original_item=update.original_item,
                frequency=existing.frequency + 1,
                last_used=max(existing.last_used, now),
            )
        table[key] = preference
        return preference

    def upsert_supplier_preference(
        self,
        original_item: str,
        supplier_id: int,
        product_id: Optional[int] = None
    ) -> SupplierPreference:
        update = SupplierPreferenceUpdate(original_item=original_item, supplier_id=supplier_id, product_id=product_id)
        with self._lock:
            preference = self._apply_supplier_upsert(self._supplier_preferences, update, self.clock())
        return self._describe_supplier(preference)

    def batch_upsert_supplier_preferences(
        self,
        updates: Sequence[SupplierPreferenceUpdate]
    ) -> List[SupplierPreference]:
        now = self.clock()
        with self._lock:
            # Stage on a copy so a failing update leaves the store untouched
            staged = copy.copy(self._supplier_preferences)
            next_id = self._next_id
            try:
                results = [self._apply_supplier_upsert(staged, update, now) for update in updates]
            except Exception:
                self._next_id = next_id
                raise
            self._supplier_preferences = staged
        return [self._describe_supplier(p) for p in results]

    # ---- retention --------------------------------------------------------

    def cleanup(self, days_old: int) -> int:
        cutoff = self.clock() - timedelta(days=days_old)
        with self._lock:
            stale_items = [
                key for key, p in self._item_preferences.items()
                if p.frequency <= 1 and p.last_used < cutoff
            ]
            stale_suppliers = [
                key for key, p in self._supplier_preferences.items()
                if p.frequency <= 1 and p.last_used < cutoff
            ]
            for key in stale_items:
                del self._item_preferences[key]
            for key in stale_suppliers:
                del self._supplier_preferences[key]
        return len(stale_items) + len(stale_suppliers)
