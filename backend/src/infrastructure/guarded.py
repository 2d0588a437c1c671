"""Timeout guards for external stores.

Each guarded store runs the wrapped call on a thread pool and waits at most
timeout_seconds for it. Expiry is reported as StoreUnavailable (or
PreferenceStoreUnavailable) instead of blocking the batch indefinitely.

The deadline starts once a worker picks the call up; time spent queued for
a free worker has its own budget of the same length. Size the pool to the
number of threads calling the store concurrently.
"""

import contextvars
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Dict, List, Optional, Sequence

from errors import PreferenceStoreUnavailable, StoreUnavailable
from matching.ports import CatalogCandidate, CatalogStore
from observability.metrics import store_unavailable_total
from preferences.ports import ItemPreference, PreferenceStore, SupplierPreference, SupplierPreferenceUpdate
from pricing.ports import Supplier, SupplierPriceOffer, SupplierPriceStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_WORKERS = 4


class TimeoutGuard:
    """Run store calls with a deadline.

    Args:
        store_name: Name used in errors and metrics ("catalog", "price", ...)
        timeout_seconds: Maximum run time of one call
        error_factory: Builds the exception raised on expiry
        max_workers: Size of the guard's thread pool
    """

    def __init__(
        self,
        store_name: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        error_factory: Optional[Callable[[str], StoreUnavailable]] = None,
        max_workers: int = DEFAULT_MAX_WORKERS
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.store_name = store_name
        self.timeout_seconds = timeout_seconds
        self.max_workers = max_workers
        self.error_factory = error_factory or (lambda message: StoreUnavailable(store_name, message))
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{store_name}-store")

    def _expired(self, func: Callable, message: str) -> StoreUnavailable:
        store_unavailable_total.labels(store=self.store_name).inc()
        logger.warning(f"{self.store_name} store call {getattr(func, '__name__', func)} {message}")
        error = self.error_factory(message)
        # The call may still complete in the background
        error.details["timed_out"] = True
        return error

    def call(self, func: Callable, *args, **kwargs):
        """Call func(*args, **kwargs), raising the guard's error on expiry.

        Raises:
            RuntimeError: If the guard was shut down
        """
        context = contextvars.copy_context()
        started = threading.Event()

        def run():
            started.set()
            return context.run(func, *args, **kwargs)

        future = self._executor.submit(run)
        if not started.wait(self.timeout_seconds) and future.cancel():
            raise self._expired(func, f"found no free worker within {self.timeout_seconds}s")
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            raise self._expired(func, f"timed out after {self.timeout_seconds}s")

    def shutdown(self) -> None:
        """Stop accepting calls; queued calls are cancelled, running ones are left to finish."""
        self._executor.shutdown(wait=False, cancel_futures=True)


class GuardedCatalogStore(CatalogStore):
    """CatalogStore wrapper applying a call timeout."""

    def __init__(
        self,
        store: CatalogStore,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS
    ):
        self.store = store
        self.guard = TimeoutGuard("catalog", timeout_seconds, max_workers=max_workers)

    def close(self) -> None:
        self.guard.shutdown()

    def search_exact_substring(self, text: str) -> List[CatalogCandidate]:
        return self.guard.call(self.store.search_exact_substring, text)

    def search_brand_category(self, brand: str, category_filter: Optional[Sequence[str]] = None) -> List[CatalogCandidate]:
        return self.guard.call(self.store.search_brand_category, brand, category_filter)

    def search_word_set(self, words: Sequence[str], min_matched: int = 2) -> List[CatalogCandidate]:
        return self.guard.call(self.store.search_word_set, words, min_matched)

    def search_single_word(self, words: Sequence[str]) -> List[CatalogCandidate]:
        return self.guard.call(self.store.search_single_word, words)


class GuardedSupplierPriceStore(SupplierPriceStore):
    """SupplierPriceStore wrapper applying a call timeout."""

    def __init__(
        self,
        store: SupplierPriceStore,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS
    ):
        self.store = store
        self.guard = TimeoutGuard("price", timeout_seconds, max_workers=max_workers)

    def close(self) -> None:
        self.guard.shutdown()

    def get_offers_for_product(self, product_id: int) -> List[SupplierPriceOffer]:
        return self.guard.call(self.store.get_offers_for_product, product_id)

    def get_supplier_by_name(self, name: str) -> Optional[Supplier]:
        return self.guard.call(self.store.get_supplier_by_name, name)

    def get_supplier_by_id(self, supplier_id: int) -> Optional[Supplier]:
        return self.guard.call(self.store.get_supplier_by_id, supplier_id)


class GuardedPreferenceStore(PreferenceStore):
    """PreferenceStore wrapper applying a call timeout.

    Expiry raises PreferenceStoreUnavailable, which callers treat as a
    non-fatal read or write failure.
    """

    def __init__(
        self,
        store: PreferenceStore,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS
    ):
        self.store = store
        self.guard = TimeoutGuard(
            "preference", timeout_seconds, error_factory=PreferenceStoreUnavailable, max_workers=max_workers
        )

    def close(self) -> None:
        self.guard.shutdown()

    def get_item_preference(self, user_id: int, original_item: str) -> Optional[ItemPreference]:
        return self.guard.call(self.store.get_item_preference, user_id, original_item)

    def get_item_preferences(self, user_id: int, items: Sequence[str]) -> Dict[str, ItemPreference]:
        return self.guard.call(self.store.get_item_preferences, user_id, items)

    def list_item_preferences(self, user_id: int) -> List[ItemPreference]:
        return self.guard.call(self.store.list_item_preferences, user_id)

    def upsert_item_preference(
        self,
        user_id: int,
        original_item: str,
        product_id: int,
        supplier_id: Optional[int] = None
    ) -> ItemPreference:
        return self.guard.call(self.store.upsert_item_preference, user_id, original_item, product_id, supplier_id)

    def delete_item_preference(self, user_id: int, original_item: str) -> bool:
        return self.guard.call(self.store.delete_item_preference, user_id, original_item)

    def get_supplier_preference(self, original_item: str, product_id: Optional[int]) -> Optional[SupplierPreference]:
        return self.guard.call(self.store.get_supplier_preference, original_item, product_id)

    def upsert_supplier_preference(
        self,
        original_item: str,
        supplier_id: int,
        product_id: Optional[int] = None
    ) -> SupplierPreference:
        return self.guard.call(self.store.upsert_supplier_preference, original_item, supplier_id, product_id)

    def batch_upsert_supplier_preferences(self, updates: Sequence[SupplierPreferenceUpdate]) -> List[SupplierPreference]:
        return self.guard.call(self.store.batch_upsert_supplier_preferences, updates)

    def cleanup(self, days_old: int) -> int:
        return self.guard.call(self.store.cleanup, days_old)
