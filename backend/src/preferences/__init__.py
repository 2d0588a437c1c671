"""Learned user preferences: store port, strength scoring and learning feedback."""

from .ports import (
    ItemPreference,
    PreferenceStore,
    SupplierPreference,
    SupplierPreferenceUpdate,
    preference_key,
    utc_now,
)
from .strength import calculate_preference_strength
from .learning import PreferenceLearningService

__all__ = [
    "ItemPreference",
    "PreferenceStore",
    "SupplierPreference",
    "SupplierPreferenceUpdate",
    "preference_key",
    "utc_now",
    "calculate_preference_strength",
    "PreferenceLearningService",
]
