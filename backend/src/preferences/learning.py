"""Preference learning feedback.

Records user confirmations and overrides as learned preferences and runs
the retention cleanup. Writes never block the caller: a failing preference
store is logged and the operation reports that nothing was learned.
"""

import logging
from datetime import timedelta
from typing import Callable, List, Optional, Sequence

from errors import PreferenceStoreUnavailable, StoreUnavailable
from observability.metrics import preference_writes_total, store_unavailable_total
from pricing.ports import SupplierPriceStore
from .ports import (
    ItemPreference,
    PreferenceStore,
    SupplierPreference,
    SupplierPreferenceUpdate,
    preference_key,
    utc_now,
)
from .schemas import OverrideResult, PreferenceRetentionSettings, PreferenceStats, PreferencesSummary

logger = logging.getLogger(__name__)

RECENT_USAGE_DAYS = 7


class PreferenceLearningService:
    """Service for learning from user decisions.

    Every confirmation of the same mapping increments its frequency and
    refreshes last_used. The store guarantees the increment is atomic.
    """

    def __init__(
        self,
        store: PreferenceStore,
        price_store: Optional[SupplierPriceStore] = None,
        retention: Optional[PreferenceRetentionSettings] = None,
        clock: Callable = utc_now
    ):
        """Initialize learning service.

        Args:
            store: Preference store receiving the upserts
            price_store: Supplier price store used to describe overrides
            retention: Cleanup window (default 365 days)
            clock: Returns the current time
        """
        self.store = store
        self.price_store = price_store
        self.retention = retention or PreferenceRetentionSettings()
        self.clock = clock

    def _write_failed(self, kind: str, error: PreferenceStoreUnavailable, **extra) -> None:
        preference_writes_total.labels(kind=kind, status="error").inc()
        store_unavailable_total.labels(store="preference").inc()
        if error.details.get("timed_out"):
            logger.warning(
                f"Outcome of {kind} preference write unknown, store did not answer in time: {error.message}",
                extra=extra,
            )
        else:
            logger.warning(f"Failed to record {kind} preference: {error.message}", extra=extra)

    def _describe_supplier(self, product_id: int, supplier_id: int):
        """Name and price of the overriding supplier; (None, None) if unknown."""
        if self.price_store is None:
            return None, None
        try:
            for offer in self.price_store.get_offers_for_product(product_id):
                if offer.supplier_id == supplier_id:
                    return offer.supplier_name, offer.price
            supplier = self.price_store.get_supplier_by_id(supplier_id)
        except StoreUnavailable as e:
            logger.warning(
                f"Could not describe supplier {supplier_id} for override: {e.message}",
                extra={"product_id": product_id},
            )
            return None, None
        return (supplier.name if supplier else None), None

    def record_item_preference(
        self,
        user_id: int,
        original_item: str,
        product_id: int,
        supplier_id: Optional[int] = None
    ) -> Optional[ItemPreference]:
        """Learn that a user maps an item text to a product.

        Returns:
            The stored preference, or None if the store was unavailable
        """
        try:
            preference = self.store.upsert_item_preference(user_id, original_item, product_id, supplier_id)
        except PreferenceStoreUnavailable as e:
            self._write_failed("item", e, user_id=user_id, original_item=original_item)
            return None

        preference_writes_total.labels(kind="item", status="success").inc()
        logger.info(
            f"Learned item preference -> product {product_id} (frequency {preference.frequency})",
            extra={"user_id": user_id, "original_item": original_item, "product_id": product_id},
        )
        return preference

    def record_supplier_preference(
        self,
        original_item: str,
        supplier_id: int,
        product_id: Optional[int] = None
    ) -> Optional[SupplierPreference]:
        """Learn that an item text is ordered from a supplier.

        Returns:
            The stored preference, or None if the store was unavailable
        """
        try:
            preference = self.store.upsert_supplier_preference(original_item, supplier_id, product_id)
        except PreferenceStoreUnavailable as e:
            self._write_failed("supplier", e, original_item=original_item)
            return None

        preference_writes_total.labels(kind="supplier", status="success").inc()
        logger.info(
            f"Learned supplier preference -> supplier {supplier_id} (frequency {preference.frequency})",
            extra={"original_item": original_item, "product_id": product_id},
        )
        return preference

    def record_supplier_preferences(
        self,
        updates: Sequence[SupplierPreferenceUpdate]
    ) -> List[SupplierPreference]:
        """Learn several supplier choices in one all-or-nothing transaction.

        Returns:
            Stored preferences, or an empty list if the write failed. A
            failure rolls the batch back; after a timeout the store may still
            commit it in the background, which is logged as an unknown outcome.
        """
        if not updates:
            return []
        try:
            preferences = self.store.batch_upsert_supplier_preferences(updates)
        except PreferenceStoreUnavailable as e:
            self._write_failed("batch", e)
            return []

        preference_writes_total.labels(kind="batch", status="success").inc()
        logger.info(f"Learned {len(preferences)} supplier preferences in one batch")
        return preferences

    def record_override(
        self,
        user_id: int,
        original_item: str,
        product_id: Optional[int],
        supplier_id: int
    ) -> OverrideResult:
        """Record a manual supplier override for a picklist entry.

        Both the item preference (item -> product, supplier) and the supplier
        preference (item, product -> supplier) are learned.

        Args:
            user_id: User making the override
            original_item: Item text as it appeared on the order
            product_id: Product of the entry
            supplier_id: Supplier chosen by the user

        Returns:
            OverrideResult describing the chosen supplier and learned frequency

        Raises:
            ValueError: If no product is given
        """
        if product_id is None:
            raise ValueError("A product is required to record a supplier override")

        item_preference = self.record_item_preference(user_id, original_item, product_id, supplier_id)
        supplier_preference = self.record_supplier_preference(original_item, supplier_id, product_id)
        supplier_name, price = self._describe_supplier(product_id, supplier_id)

        frequency = 0
        if supplier_preference is not None:
            frequency = supplier_preference.frequency
        elif item_preference is not None:
            frequency = item_preference.frequency

        return OverrideResult(
            product_id=product_id,
            supplier_id=supplier_id,
            supplier_name=supplier_name,
            price=price,
            frequency=frequency,
            preference_updated=item_preference is not None and supplier_preference is not None,
        )

    def cleanup_stale_preferences(self, retention_days: Optional[int] = None) -> int:
        """Delete single-use preferences not used within the retention window.

        Args:
            retention_days: Override of the configured window

        Returns:
            Number of preferences removed (0 if the store was unavailable)
        """
        days = self.retention.retention_days
        if retention_days is not None:
            days = PreferenceRetentionSettings(retention_days=retention_days).retention_days

        try:
            removed = self.store.cleanup(days)
        except PreferenceStoreUnavailable as e:
            store_unavailable_total.labels(store="preference").inc()
            logger.warning(f"Preference cleanup failed: {e.message}")
            return 0

        logger.info(f"Cleaned up {removed} preferences unused for more than {days} days")
        return removed

    def preference_stats(self, user_id: int) -> PreferenceStats:
        """Usage statistics of a user's item preferences."""
        preferences = self.store.list_item_preferences(user_id)
        if not preferences:
            return PreferenceStats()

        recent_cutoff = self.clock() - timedelta(days=RECENT_USAGE_DAYS)
        frequencies = [p.frequency for p in preferences]
        return PreferenceStats(
            total_preferences=len(preferences),
            unique_items=len({preference_key(p.original_item) for p in preferences}),
            unique_products=len({p.product_id for p in preferences}),
            unique_suppliers=len({p.supplier_id for p in preferences if p.supplier_id is not None}),
            avg_frequency=round(sum(frequencies) / len(frequencies), 2),
            max_frequency=max(frequencies),
            recent_usage=sum(1 for p in preferences if p.last_used >= recent_cutoff),
        )

    def preferences_summary(self, user_id: int, items: Sequence[str]) -> PreferencesSummary:
        """Report which order items already have a learned preference.

        Args:
            user_id: User whose preferences apply
            items: Item texts as they appear on the order

        Returns:
            PreferencesSummary with coverage rounded to one decimal
        """
        found = self.store.get_item_preferences(user_id, items)

        details = {}
        for item in items:
            preference = found.get(preference_key(item))
            if preference is None:
                continue
            details[item] = {
                "product_id": preference.product_id,
                "product_description": preference.product_description,
                "supplier_id": preference.supplier_id,
                "supplier_name": preference.supplier_name,
                "frequency": preference.frequency,
                "last_used": preference.last_used.isoformat(),
            }

        total = len(items)
        coverage = round(len(details) / total * 100, 1) if total else 0.0
        return PreferencesSummary(
            total_items=total,
            items_with_preferences=len(details),
            coverage_percentage=coverage,
            preferences=details,
        )
