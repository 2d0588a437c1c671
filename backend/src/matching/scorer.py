"""Weighted term-overlap scoring for the word-set strategy.

Score formula:
- Each significant word carries a weight equal to its length
- A word is present when a description token equals it or starts with it
  (so "color" matches "colors")
- rank = sum(weight of present words) / sum(weight of all words), in [0, 1]
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from .normalizer import tokenize


def matched_words(words: Sequence[str], description: str) -> List[str]:
    """Return the subset of words present in description.

    Args:
        words: Lower-cased significant words
        description: Product description

    Returns:
        Words found in the description, in input order
    """
    tokens = set(tokenize(description))
    found = []
    for word in words:
        if word in tokens or any(token.startswith(word) for token in tokens):
            found.append(word)
    return found


def weighted_overlap(words: Sequence[str], description: str) -> Tuple[float, int]:
    """Calculate weighted term overlap between words and a description.

    Args:
        words: Lower-cased significant words
        description: Product description

    Returns:
        Tuple of (rank in 0.0-1.0, number of matched words)
    """
    total_weight = sum(len(word) for word in words)
    if total_weight == 0:
        return 0.0, 0
    found = matched_words(words, description)
    return sum(len(word) for word in found) / total_weight, len(found)


def rank_descriptions(
    words: Sequence[str],
    descriptions: Iterable[Tuple[int, str]],
    min_matched: int
) -> Dict[int, float]:
    """Rank product descriptions against a word set.

    Args:
        words: Lower-cased significant words
        descriptions: (product_id, description) pairs
        min_matched: Minimum matched words for a description to qualify

    Returns:
        Dict mapping qualifying product_id to rank
    """
    ranks = {}
    for product_id, description in descriptions:
        rank, count = weighted_overlap(words, description)
        if count >= min_matched:
            ranks[product_id] = rank
    return ranks
