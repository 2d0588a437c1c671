"""Catalog matching strategies.

Each strategy is a callable taking a MatchQuery and a CatalogStore and
returning a MatchCandidate or None. The catalog matcher evaluates them in a
fixed order and stops at the first candidate.

Within one strategy several products can satisfy the filter; the cheapest
offer wins (word-set: highest rank first, then cheapest).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import MatchingConfig
from .normalizer import normalize_item_text, tokenize
from .ports import CatalogCandidate, CatalogStore, MatchCandidate


@dataclass(frozen=True)
class MatchQuery:
    """Pre-processed item text shared by all strategies.

    Attributes:
        raw_text: Item text as it appeared on the order
        normalized: normalize_item_text(raw_text)
        tokens: Alphanumeric tokens of the normalized text
    """
    raw_text: str
    normalized: str
    tokens: tuple

    @classmethod
    def from_text(cls, raw_text: str) -> "MatchQuery":
        normalized = normalize_item_text(raw_text)
        return cls(raw_text=raw_text, normalized=normalized, tokens=tuple(tokenize(normalized)))


def candidate_sort_key(candidate: CatalogCandidate):
    """Price-ascending ordering with deterministic tie-breaks."""
    return (
        candidate.price,
        candidate.product_id,
        candidate.supplier_name.lower(),
        candidate.supplier_id,
    )


def cheapest(candidates: Sequence[CatalogCandidate]) -> Optional[CatalogCandidate]:
    """Return the lowest-price candidate, or None for an empty sequence."""
    if not candidates:
        return None
    return min(candidates, key=candidate_sort_key)


def _unique(words) -> List[str]:
    seen = []
    for word in words:
        if word not in seen:
            seen.append(word)
    return seen


class MatchStrategy(ABC):
    """Base class for one matching heuristic."""

    name: str = "strategy"

    def __init__(self, config: MatchingConfig):
        self.config = config

    @abstractmethod
    def __call__(self, query: MatchQuery, store: CatalogStore) -> Optional[MatchCandidate]:
        pass

    def _candidate(self, row: CatalogCandidate, score: float) -> MatchCandidate:
        return MatchCandidate(
            product=row.product,
            match_score=score,
            strategy_name=self.name,
            chosen_offer=row.offer,
        )


class ExactSubstringStrategy(MatchStrategy):
    """Descriptions containing the leading characters of the item text."""

    name = "exact_substring"
    score = 10

    def __call__(self, query: MatchQuery, store: CatalogStore) -> Optional[MatchCandidate]:
        prefix = query.normalized[:self.config.prefix_length]
        if not prefix:
            return None
        row = cheapest(store.search_exact_substring(prefix))
        return self._candidate(row, self.score) if row else None


class BrandCategoryStrategy(MatchStrategy):
    """First word as brand, restricted to the item's category when known."""

    name = "brand_category"
    score = 5

    def __call__(self, query: MatchQuery, store: CatalogStore) -> Optional[MatchCandidate]:
        brand = query.normalized.split(" ")[0] if query.normalized else ""
        if len(brand) < self.config.min_brand_length:
            return None

        rule = self.config.classify(query.raw_text)
        category_filter = rule.description_keywords if rule else None

        row = cheapest(store.search_brand_category(brand, category_filter))
        return self._candidate(row, self.score) if row else None


class WordSetStrategy(MatchStrategy):
    """Weighted term overlap over the significant words of the item."""

    name = "word_set"

    def significant_words(self, query: MatchQuery) -> List[str]:
        return _unique(
            word for word in query.tokens
            if len(word) >= self.config.word_set_min_word_length
        )

    def __call__(self, query: MatchQuery, store: CatalogStore) -> Optional[MatchCandidate]:
        words = self.significant_words(query)
        if len(words) < self.config.word_set_min_words:
            return None

        rows = store.search_word_set(words, min_matched=self.config.word_set_min_matched_words)
        if not rows:
            return None

        best = min(rows, key=lambda row: (-row.rank,) + candidate_sort_key(row))
        return self._candidate(best, best.rank)


class ImportantWordStrategy(MatchStrategy):
    """Any one long, non-generic word of the item."""

    name = "single_word"
    score = 1

    def important_words(self, query: MatchQuery) -> List[str]:
        stoplist = set(self.config.important_word_stoplist)
        return _unique(
            word for word in query.tokens
            if len(word) >= self.config.important_word_min_length and word not in stoplist
        )

    def __call__(self, query: MatchQuery, store: CatalogStore) -> Optional[MatchCandidate]:
        words = self.important_words(query)
        if not words:
            return None
        row = cheapest(store.search_single_word(words))
        return self._candidate(row, self.score) if row else None


def default_strategies(config: MatchingConfig) -> List[MatchStrategy]:
    """Strategies in priority order."""
    return [
        ExactSubstringStrategy(config),
        BrandCategoryStrategy(config),
        WordSetStrategy(config),
        ImportantWordStrategy(config),
    ]
