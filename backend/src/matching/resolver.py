"""Preference-aware product resolution.

A learned item preference is an exact cache of a previous user decision. It
is looked up by case-folded raw text only, never by normalized text, so that
drift in text matching can't redirect a learned mapping.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from errors import PreferenceStoreUnavailable
from observability.metrics import store_unavailable_total
from preferences.ports import ItemPreference, PreferenceStore
from pricing.offer_cache import CachedOfferLookup
from pricing.ports import SupplierPriceOffer
from .ports import CatalogProduct, MatcherPort

logger = logging.getLogger(__name__)

PREFERENCE_STRATEGY = "item_preference"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one order item to a product.

    Attributes:
        original_item: Item text as it appeared on the order
        product: Resolved product (None if nothing matched)
        offer: Cheapest offer for the product (None if no product/offers)
        is_preference: True if a learned item preference was used
        frequency: Confirmations of the learned preference (0 otherwise)
        strategy_name: Matching strategy or "item_preference"
        match_score: Strategy score (0.0 for preferences and misses)
        preference: The learned preference, when used
    """
    original_item: str
    product: Optional[CatalogProduct]
    offer: Optional[SupplierPriceOffer]
    is_preference: bool
    frequency: int = 0
    strategy_name: Optional[str] = None
    match_score: float = 0.0
    preference: Optional[ItemPreference] = None

    @property
    def product_id(self) -> Optional[int]:
        return self.product.id if self.product else None


class PreferenceAwareResolver:
    """Resolve items through learned preferences before catalog matching.

    Pipeline:
    1. Look up the user's item preference (exact, case-insensitive)
    2. If found: use the preferred product and its cheapest current offer
    3. Otherwise: run the catalog matcher
    """

    def __init__(
        self,
        preference_store: PreferenceStore,
        matcher: MatcherPort,
        offers: CachedOfferLookup
    ):
        """Initialize resolver.

        Args:
            preference_store: Learned preference store
            matcher: Catalog matcher used as fallback
            offers: Batch-scoped offer lookup
        """
        self.preference_store = preference_store
        self.matcher = matcher
        self.offers = offers

    def _lookup_preference(self, user_id: int, original_item: str) -> Optional[ItemPreference]:
        try:
            return self.preference_store.get_item_preference(user_id, original_item)
        except PreferenceStoreUnavailable as e:
            # Reads degrade to automatic matching
            store_unavailable_total.labels(store="preference").inc()
            logger.warning(
                f"Item preference lookup failed, using automatic matching: {e.message}",
                extra={"user_id": user_id, "original_item": original_item},
            )
            return None

    def resolve(self, original_item: str, user_id: int) -> Resolution:
        """Resolve an order item to a product.

        Args:
            original_item: Item text as it appeared on the order
            user_id: User whose preferences apply

        Returns:
            Resolution (product None when nothing matched)
        """
        preference = self._lookup_preference(user_id, original_item)

        if preference is not None:
            logger.info(
                f"Using learned preference for product {preference.product_id} "
                f"(selected {preference.frequency} times)",
                extra={"user_id": user_id, "original_item": original_item},
            )
            return Resolution(
                original_item=original_item,
                product=CatalogProduct(
                    id=preference.product_id,
                    description=preference.product_description or "",
                ),
                offer=self.offers.cheapest(preference.product_id),
                is_preference=True,
                frequency=preference.frequency,
                strategy_name=PREFERENCE_STRATEGY,
                preference=preference,
            )

        candidate = self.matcher.match(original_item)
        if candidate is None:
            return Resolution(original_item=original_item, product=None, offer=None, is_preference=False)

        return Resolution(
            original_item=original_item,
            product=candidate.product,
            offer=candidate.chosen_offer,
            is_preference=False,
            strategy_name=candidate.strategy_name,
            match_score=candidate.match_score,
        )
