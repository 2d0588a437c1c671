"""Matching module.

Resolves free-text order items to catalog products:
- Normalizer (text cleanup)
- Ordered matching strategies (exact substring, brand/category, word set,
  single important word)
- Preference-aware resolver (learned item preferences first)
"""

from .ports import CatalogCandidate, CatalogProduct, CatalogStore, MatchCandidate, MatcherPort
from .normalizer import normalize_item_text, tokenize
from .config import CategoryRule, MatchingConfig
from .strategies import MatchQuery, MatchStrategy, default_strategies
from .catalog_matcher import CatalogMatcher
from .resolver import PreferenceAwareResolver, Resolution

__all__ = [
    "CatalogCandidate",
    "CatalogProduct",
    "CatalogStore",
    "MatchCandidate",
    "MatcherPort",
    "normalize_item_text",
    "tokenize",
    "CategoryRule",
    "MatchingConfig",
    "MatchQuery",
    "MatchStrategy",
    "default_strategies",
    "CatalogMatcher",
    "PreferenceAwareResolver",
    "Resolution",
]
