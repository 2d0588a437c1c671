"""Supplier decision engine.

Decision cascade, evaluated in order, stopping at the first applicable step:
1. User-preferred supplier (confidence high)
2. Lowest price among all suppliers of the product (confidence medium)
3. Back order sentinel when no offer exists (confidence low)
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Tuple

from errors import NoSupplierAvailable, PreferenceStoreUnavailable
from matching.ports import MatcherPort
from observability.metrics import store_unavailable_total, supplier_decisions_total
from preferences.ports import PreferenceStore, SupplierPreference, utc_now
from preferences.strength import calculate_preference_strength
from .offer_cache import CachedOfferLookup
from .ports import SupplierPriceOffer

logger = logging.getLogger(__name__)

BACK_ORDER = "back order"
BEST_PRICE_REASON = "Best price available"
NO_SUPPLIER_REASON = "No suppliers available"


class Confidence(str, Enum):
    """Confidence of a supplier decision"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


CONFIDENCE_SCORES = {
    Confidence.HIGH: 1.0,
    Confidence.MEDIUM: 0.7,
    Confidence.LOW: 0.4,
}


@dataclass(frozen=True)
class SupplierDecision:
    """Final supplier/price choice for one order item.

    Attributes:
        supplier_id: Chosen supplier (None for back order)
        supplier_name: Chosen supplier name or "back order"
        price: Unit price (None for back order)
        reason: Human-readable reason for the choice
        is_user_preferred: True if a learned supplier preference decided
        alternatives: Up to N other offers, cheapest first
        confidence: high / medium / low
        preference_strength: 0.0, or 0.1-1.0 for preferred suppliers
        product_id: Product the price refers to
    """
    supplier_id: Optional[int]
    supplier_name: str
    price: Optional[Decimal]
    reason: str
    is_user_preferred: bool
    alternatives: Tuple[SupplierPriceOffer, ...]
    confidence: Confidence
    preference_strength: float = 0.0
    product_id: Optional[int] = None

    @property
    def is_back_order(self) -> bool:
        return self.supplier_name == BACK_ORDER

    @property
    def confidence_score(self) -> float:
        return CONFIDENCE_SCORES[self.confidence]

    @classmethod
    def back_order(cls, reason: str = NO_SUPPLIER_REASON, product_id: Optional[int] = None) -> "SupplierDecision":
        """Sentinel decision used when no supplier can be chosen."""
        return cls(
            supplier_id=None,
            supplier_name=BACK_ORDER,
            price=None,
            reason=reason,
            is_user_preferred=False,
            alternatives=(),
            confidence=Confidence.LOW,
            preference_strength=0.0,
            product_id=product_id,
        )

    def to_dict(self) -> dict:
        """Convert decision to dictionary representation."""
        return {
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "price": str(self.price) if self.price is not None else None,
            "reason": self.reason,
            "is_user_preferred": self.is_user_preferred,
            "alternatives": [offer.to_dict() for offer in self.alternatives],
            "confidence": self.confidence.value,
            "preference_strength": self.preference_strength,
            "product_id": self.product_id,
        }


class SupplierDecisionEngine:
    """Decide the supplier for a resolved product.

    Learned supplier preferences always win over cheaper offers as long as
    the preferred supplier still offers the product.
    """

    def __init__(
        self,
        preference_store: PreferenceStore,
        offers: CachedOfferLookup,
        matcher: Optional[MatcherPort] = None,
        max_alternatives: int = 3,
        clock: Callable = utc_now
    ):
        """Initialize decision engine.

        Args:
            preference_store: Learned preference store
            offers: Batch-scoped offer lookup
            matcher: Catalog matcher used when no product is given
            max_alternatives: Maximum alternatives reported per decision
            clock: Returns the current time (for preference decay)
        """
        self.preference_store = preference_store
        self.offers = offers
        self.matcher = matcher
        self.max_alternatives = max_alternatives
        self.clock = clock

    def decide(
        self,
        original_item: str,
        product_id: Optional[int] = None,
        resolve_product: bool = True
    ) -> SupplierDecision:
        """Choose a supplier for an order item.

        Args:
            original_item: Item text as it appeared on the order
            product_id: Resolved product (None if unknown)
            resolve_product: Run the catalog matcher when product_id is None

        Returns:
            SupplierDecision (back order sentinel when nothing is available)

        Raises:
            StoreUnavailable: If the catalog or price store fails
        """
        resolved = {}

        def product_for_pricing(fallback: Optional[int] = None) -> Optional[int]:
            if product_id is not None:
                return product_id
            if fallback is not None:
                return fallback
            if "matched" not in resolved:
                candidate = None
                if resolve_product and self.matcher is not None:
                    candidate = self.matcher.match(original_item)
                resolved["matched"] = candidate.product.id if candidate else None
            return resolved["matched"]

        decision = self._preferred_supplier(original_item, product_id, product_for_pricing)
        if decision is None:
            decision = self._best_price(original_item, product_for_pricing())

        supplier_decisions_total.labels(confidence=decision.confidence.value).inc()
        logger.debug(
            f"Decision: {decision.supplier_name} ({decision.reason})",
            extra={"original_item": original_item, "supplier": decision.supplier_name},
        )
        return decision

    def _lookup_preference(self, original_item: str, product_id: Optional[int]) -> Optional[SupplierPreference]:
        try:
            preference = self.preference_store.get_supplier_preference(original_item, product_id)
            if preference is None and product_id is not None:
                preference = self.preference_store.get_supplier_preference(original_item, None)
            return preference
        except PreferenceStoreUnavailable as e:
            store_unavailable_total.labels(store="preference").inc()
            logger.warning(
                f"Supplier preference lookup failed, using price optimization: {e.message}",
                extra={"original_item": original_item},
            )
            return None

    def _preferred_supplier(
        self,
        original_item: str,
        product_id: Optional[int],
        product_for_pricing: Callable
    ) -> Optional[SupplierDecision]:
        preference = self._lookup_preference(original_item, product_id)
        if preference is None:
            return None

        pricing_product = product_for_pricing(preference.product_id)
        if pricing_product is None:
            logger.info(
                "Supplier preference found but no product resolved",
                extra={"original_item": original_item},
            )
            return None

        offer = self.offers.offer_from(pricing_product, preference.supplier_id)
        if offer is None:
            logger.info(
                f"Preferred supplier {preference.supplier_id} no longer offers product {pricing_product}",
                extra={"original_item": original_item, "product_id": pricing_product},
            )
            return None

        return SupplierDecision(
            supplier_id=offer.supplier_id,
            supplier_name=offer.supplier_name,
            price=offer.price,
            reason=f"User preference (selected {preference.frequency} times)",
            is_user_preferred=True,
            alternatives=self.alternatives(pricing_product, offer.supplier_id),
            confidence=Confidence.HIGH,
            preference_strength=calculate_preference_strength(
                preference.frequency, preference.last_used, self.clock()
            ),
            product_id=pricing_product,
        )

    def _best_price(self, original_item: str, product_id: Optional[int]) -> SupplierDecision:
        if product_id is None:
            return SupplierDecision.back_order()
        try:
            offer = self._cheapest_offer(product_id)
        except NoSupplierAvailable as e:
            logger.info(e.message, extra={"original_item": original_item, "product_id": product_id})
            return SupplierDecision.back_order(product_id=product_id)

        return SupplierDecision(
            supplier_id=offer.supplier_id,
            supplier_name=offer.supplier_name,
            price=offer.price,
            reason=BEST_PRICE_REASON,
            is_user_preferred=False,
            alternatives=self.alternatives(product_id, offer.supplier_id),
            confidence=Confidence.MEDIUM,
            preference_strength=0.0,
            product_id=product_id,
        )

    def _cheapest_offer(self, product_id: int) -> SupplierPriceOffer:
        offer = self.offers.cheapest(product_id)
        if offer is None:
            raise NoSupplierAvailable(product_id)
        return offer

    def alternatives(self, product_id: int, exclude_supplier_id: Optional[int]) -> Tuple[SupplierPriceOffer, ...]:
        """Other offers for the product, cheapest first, at most max_alternatives."""
        others = [
            offer for offer in self.offers.offers_for(product_id)
            if offer.supplier_id != exclude_supplier_id
        ]
        return tuple(others[:self.max_alternatives])
