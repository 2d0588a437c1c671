"""Batch orchestrator for picklist generation.

For each order item: Resolver -> Supplier Decision Engine -> PicklistEntry.
A failure on one item is logged, recorded as BatchItemError and replaced by
a back-order entry; it never aborts the batch.
"""

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from config import Settings, get_settings
from errors import BatchItemError
from infrastructure.guarded import (
    DEFAULT_MAX_WORKERS,
    GuardedCatalogStore,
    GuardedPreferenceStore,
    GuardedSupplierPriceStore,
)
from matching.catalog_matcher import CatalogMatcher
from matching.config import MatchingConfig
from matching.ports import CatalogStore
from matching.resolver import PreferenceAwareResolver
from observability.batch_id import batch_id_var, generate_batch_id
from observability.metrics import picklist_batch_duration_seconds, picklist_items_processed_total
from preferences.ports import PreferenceStore, utc_now
from pricing.decision import SupplierDecision, SupplierDecisionEngine
from pricing.offer_cache import CacheFactory, CachedOfferLookup, OfferCache
from pricing.ports import SupplierPriceStore
from .schemas import OrderItem, PicklistEntry, PicklistResult
from .summary import summarize, validate_entries

logger = logging.getLogger(__name__)


class _BatchPipeline:
    """Components wired for one batch; discarded when the batch ends."""

    def __init__(self, resolver: PreferenceAwareResolver, engine: SupplierDecisionEngine):
        self.resolver = resolver
        self.engine = engine


class PicklistService:
    """Generate picklists from order items.

    Every call to generate() gets a fresh offer cache, so prices are never
    shared between batches or users.
    """

    def __init__(
        self,
        catalog_store: CatalogStore,
        price_store: SupplierPriceStore,
        preference_store: PreferenceStore,
        config: Optional[MatchingConfig] = None,
        cache_factory: Optional[CacheFactory] = None,
        max_workers: int = 1,
        clock: Callable = utc_now
    ):
        """Initialize picklist service.

        Args:
            catalog_store: Catalog searches for the matcher
            price_store: Supplier offers
            preference_store: Learned preferences
            config: Matching tunables
            cache_factory: Creates the per-batch offer cache
            max_workers: Worker threads per batch (1 = sequential)
            clock: Returns the current time
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.catalog_store = catalog_store
        self.price_store = price_store
        self.preference_store = preference_store
        self.config = config or MatchingConfig()
        self.cache_factory = cache_factory or OfferCache
        self.max_workers = max_workers
        self.clock = clock
        self._owned_stores = []

    @classmethod
    def from_settings(
        cls,
        catalog_store: CatalogStore,
        price_store: SupplierPriceStore,
        preference_store: PreferenceStore,
        settings: Optional[Settings] = None
    ) -> "PicklistService":
        """Build a service with timeout-guarded stores and configured tunables.

        Each guard gets at least one pool thread per batch worker, so parallel
        items never wait on each other for a store thread. The service owns
        the guards: call close() (or use it as a context manager) when done.
        """
        settings = settings or get_settings()
        timeout = settings.STORE_TIMEOUT_SECONDS
        max_entries = settings.OFFER_CACHE_MAX_ENTRIES
        pool_size = max(settings.PICKLIST_MAX_WORKERS, DEFAULT_MAX_WORKERS)
        service = cls(
            catalog_store=GuardedCatalogStore(catalog_store, timeout, max_workers=pool_size),
            price_store=GuardedSupplierPriceStore(price_store, timeout, max_workers=pool_size),
            preference_store=GuardedPreferenceStore(preference_store, timeout, max_workers=pool_size),
            config=MatchingConfig.from_settings(settings),
            cache_factory=lambda: OfferCache(max_entries),
            max_workers=settings.PICKLIST_MAX_WORKERS,
        )
        service._owned_stores = [service.catalog_store, service.price_store, service.preference_store]
        return service

    def close(self) -> None:
        """Shut down the store guards created by from_settings()."""
        for store in self._owned_stores:
            store.close()
        self._owned_stores = []

    def __enter__(self) -> "PicklistService":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _pipeline(self) -> _BatchPipeline:
        offers = CachedOfferLookup(self.price_store, self.cache_factory())
        matcher = CatalogMatcher(self.catalog_store, self.config)
        return _BatchPipeline(
            resolver=PreferenceAwareResolver(self.preference_store, matcher, offers),
            engine=SupplierDecisionEngine(
                self.preference_store,
                offers,
                matcher=matcher,
                max_alternatives=self.config.max_alternatives,
                clock=self.clock,
            ),
        )

    def generate(self, user_id: int, items: Sequence[OrderItem]) -> PicklistResult:
        """Generate a picklist for an order.

        Args:
            user_id: User whose preferences apply
            items: Order items in order

        Returns:
            PicklistResult with exactly one entry per item, in input order
        """
        batch_id = generate_batch_id()
        token = batch_id_var.set(batch_id)
        started = time.monotonic()
        try:
            pipeline = self._pipeline()
            logger.info(f"Generating picklist for {len(items)} items", extra={"user_id": user_id})

            if self.max_workers > 1 and len(items) > 1:
                outcomes = self._run_parallel(pipeline, user_id, items)
            else:
                outcomes = [self._process_item(pipeline, user_id, index, item) for index, item in enumerate(items)]

            entries = [entry for entry, _ in outcomes]
            errors = [error for _, error in outcomes if error is not None]
            summary = summarize(entries)

            logger.info(
                f"Picklist generated: {summary.total_items} items, total {summary.total_price}, "
                f"{summary.preference_matches} from preferences, {len(errors)} errors",
                extra={"user_id": user_id},
            )
            return PicklistResult(
                batch_id=batch_id,
                entries=entries,
                summary=summary,
                validation=validate_entries(entries),
                errors=errors,
            )
        finally:
            picklist_batch_duration_seconds.observe(time.monotonic() - started)
            batch_id_var.reset(token)

    def _run_parallel(self, pipeline: _BatchPipeline, user_id: int, items: Sequence[OrderItem]) -> List:
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="picklist") as executor:
            futures = [
                executor.submit(contextvars.copy_context().run, self._process_item, pipeline, user_id, index, item)
                for index, item in enumerate(items)
            ]
            return [future.result() for future in futures]

    def _process_item(self, pipeline: _BatchPipeline, user_id: int, index: int, item: OrderItem):
        try:
            resolution = pipeline.resolver.resolve(item.raw_text, user_id)
            decision = pipeline.engine.decide(item.raw_text, resolution.product_id, resolve_product=False)
        except Exception as e:
            error = BatchItemError(index, item.raw_text, e)
            logger.error(
                f"Failed to process item {index}: {error.message}",
                exc_info=True,
                extra={"user_id": user_id, "original_item": item.raw_text, "item_index": index},
            )
            picklist_items_processed_total.labels(outcome="error").inc()
            entry = PicklistEntry(
                index=index,
                original_item=item.raw_text,
                quantity=item.quantity,
                matched_product=None,
                decision=SupplierDecision.back_order(reason=f"Error: {error.message}"),
                error=error.message,
            )
            return entry, error

        entry = PicklistEntry(
            index=index,
            original_item=item.raw_text,
            quantity=item.quantity,
            matched_product=resolution.product,
            decision=decision,
            is_preference=resolution.is_preference,
            preference_frequency=resolution.frequency,
            strategy_name=resolution.strategy_name,
            match_score=resolution.match_score,
        )
        picklist_items_processed_total.labels(outcome=self._outcome(entry)).inc()
        return entry, None

    @staticmethod
    def _outcome(entry: PicklistEntry) -> str:
        if entry.decision.is_back_order:
            return "back_order"
        if entry.is_preference_match:
            return "preferred"
        return "optimized"
