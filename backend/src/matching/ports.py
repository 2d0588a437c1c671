"""Matching ports and interfaces for hexagonal architecture.

CatalogStore is the only way the matcher touches the product catalog.
Each search method corresponds to one matching strategy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from pricing.ports import SupplierPriceOffer


@dataclass(frozen=True)
class CatalogProduct:
    """Catalog product (read-only to the engine).

    Attributes:
        id: Product ID
        description: Product description as listed by suppliers
    """
    id: int
    description: str


@dataclass(frozen=True)
class CatalogCandidate:
    """One (product, supplier offer) row returned by a catalog search.

    Attributes:
        product_id: Product ID
        description: Product description
        supplier_id: Supplier offering the product
        supplier_name: Supplier display name
        price: Supplier unit price
        rank: Text rank (only set by word-set search, else 0.0)
    """
    product_id: int
    description: str
    supplier_id: int
    supplier_name: str
    price: Decimal
    rank: float = 0.0

    @property
    def product(self) -> CatalogProduct:
        return CatalogProduct(id=self.product_id, description=self.description)

    @property
    def offer(self) -> SupplierPriceOffer:
        return SupplierPriceOffer(
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            product_id=self.product_id,
            price=self.price,
        )


@dataclass(frozen=True)
class MatchCandidate:
    """Best single candidate produced by the catalog matcher.

    Attributes:
        product: Matched catalog product
        match_score: Strategy score (10, 5, word-set rank, or 1)
        strategy_name: Name of the strategy that produced the match
        chosen_offer: Offer selected within the strategy (cheapest)
    """
    product: CatalogProduct
    match_score: float
    strategy_name: str
    chosen_offer: SupplierPriceOffer


class CatalogStore(ABC):
    """Port interface for catalog searches.

    All searches are case-insensitive on the product description and return
    one candidate per (product, supplier) offer.
    """

    @abstractmethod
    def search_exact_substring(self, text: str) -> List[CatalogCandidate]:
        """Offers whose description contains text."""
        pass

    @abstractmethod
    def search_brand_category(
        self,
        brand: str,
        category_filter: Optional[Sequence[str]] = None
    ) -> List[CatalogCandidate]:
        """Offers whose description contains brand.

        Args:
            brand: Brand token
            category_filter: If given, description must also contain at least
                one of these keywords
        """
        pass

    @abstractmethod
    def search_word_set(self, words: Sequence[str], min_matched: int = 2) -> List[CatalogCandidate]:
        """Offers ranked by weighted term overlap with words, best first.

        Args:
            words: Significant words of the item text
            min_matched: Minimum number of words a description must contain
        """
        pass

    @abstractmethod
    def search_single_word(self, words: Sequence[str]) -> List[CatalogCandidate]:
        """Offers whose description contains any one of words."""
        pass


class MatcherPort(ABC):
    """Port interface for catalog matching."""

    @abstractmethod
    def match(self, raw_text: str) -> Optional[MatchCandidate]:
        """Match raw item text to a single catalog candidate.

        Args:
            raw_text: Item text as it appeared on the order

        Returns:
            Best MatchCandidate or None if nothing matched
        """
        pass
