"""Item text normalization.

Used by every matching strategy. Learned preferences deliberately do NOT go
through this module; they are keyed by preferences.ports.preference_key() only.
"""

import re
from typing import List

_BRACKETED = re.compile(r"\[.*?\]")
_ASTERISKED = re.compile(r"\*.*?\*")
_WHITESPACE = re.compile(r"\s+")
_WORD = re.compile(r"[a-z0-9]+")


def _strip_markup(text: str) -> str:
    # Removing one kind of span can expose another, so repeat until stable.
    previous = None
    while previous != text:
        previous = text
        text = _BRACKETED.sub("", text)
        text = _ASTERISKED.sub("", text)
    return text


def normalize_item_text(raw_text: str) -> str:
    """Normalize raw order item text for catalog matching.

    Removes [bracketed] and *asterisked* spans, collapses whitespace,
    trims and lower-cases. Idempotent.

    Args:
        raw_text: Item text as it appeared on the order

    Returns:
        Normalized text ("" for empty input)
    """
    if not raw_text:
        return ""
    text = _strip_markup(raw_text)
    return _WHITESPACE.sub(" ", text).strip().lower()


def tokenize(text: str) -> List[str]:
    """Split lower-cased text into alphanumeric tokens."""
    return _WORD.findall(text.lower())
