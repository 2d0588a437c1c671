"""Matching configuration.

MatchingConfig carries every tunable of the matching and decision engine.
Defaults reproduce the keyword heuristics the catalog was tuned for; the
keyword sets can be replaced per deployment through Settings.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from config import Settings


@dataclass(frozen=True)
class CategoryRule:
    """Keyword rule classifying item text into a product category.

    Attributes:
        name: Category name (e.g. "polish", "tool")
        source_keywords: Keywords that classify the order item text
        description_keywords: Keywords a catalog description must contain
            (at least one) when the item is classified into this category
    """
    name: str
    source_keywords: Tuple[str, ...]
    description_keywords: Tuple[str, ...]

    def applies_to(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.source_keywords)


DEFAULT_CATEGORY_RULES = (
    CategoryRule(
        name="polish",
        source_keywords=("polish", "gel", "lacquer", "color", "duo"),
        description_keywords=("polish", "gel", "lacquer"),
    ),
    CategoryRule(
        name="tool",
        source_keywords=("brush", "tool", "dotting", "file", "buffer"),
        description_keywords=("brush", "tool", "file"),
    ),
)

DEFAULT_STOPLIST = ("nail", "polish", "color", "glue", "tool", "brush", "size")


@dataclass(frozen=True)
class MatchingConfig:
    """Tunables for matching and supplier decisions."""
    min_item_text_length: int = 3
    prefix_length: int = 15
    min_brand_length: int = 3
    word_set_min_word_length: int = 4
    word_set_min_words: int = 2
    word_set_min_matched_words: int = 2
    important_word_min_length: int = 5
    important_word_stoplist: Tuple[str, ...] = DEFAULT_STOPLIST
    category_rules: Tuple[CategoryRule, ...] = DEFAULT_CATEGORY_RULES
    max_alternatives: int = 3

    def classify(self, text: str) -> Optional[CategoryRule]:
        """Classify item text into exactly one category.

        Returns:
            The only matching rule, or None when no rule or several rules apply
        """
        matches = [rule for rule in self.category_rules if rule.applies_to(text)]
        if len(matches) == 1:
            return matches[0]
        return None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MatchingConfig":
        """Build a MatchingConfig from environment settings."""
        return cls(
            min_item_text_length=settings.MIN_ITEM_TEXT_LENGTH,
            prefix_length=settings.MATCH_PREFIX_LENGTH,
            word_set_min_matched_words=settings.WORD_SET_MIN_MATCHED_WORDS,
            important_word_stoplist=tuple(settings.IMPORTANT_WORD_STOPLIST),
            category_rules=(
                CategoryRule(
                    name="polish",
                    source_keywords=tuple(settings.POLISH_SOURCE_KEYWORDS),
                    description_keywords=tuple(settings.POLISH_DESCRIPTION_KEYWORDS),
                ),
                CategoryRule(
                    name="tool",
                    source_keywords=tuple(settings.TOOL_SOURCE_KEYWORDS),
                    description_keywords=tuple(settings.TOOL_DESCRIPTION_KEYWORDS),
                ),
            ),
            max_alternatives=settings.MAX_ALTERNATIVES,
        )
