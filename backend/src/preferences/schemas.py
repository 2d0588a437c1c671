"""Pydantic schemas for preference learning results and retention.

- PreferenceRetentionSettings: cleanup window
- OverrideResult: outcome of a manual supplier override
- PreferenceStats: usage statistics of a user's item preferences
- PreferencesSummary: preference coverage of a list of order items
"""

from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, Field


class PreferenceRetentionSettings(BaseModel):
    """Retention window for rarely used preferences.

    Preferences confirmed at most once and unused for longer than
    retention_days are removed by the cleanup operation.
    """

    retention_days: int = Field(
        default=365,
        ge=1,
        le=3650,
        description="Days a single-use preference is kept after its last use (1-3650)"
    )


class OverrideResult(BaseModel):
    """Outcome of recording a manual supplier override."""

    product_id: int
    supplier_id: int
    supplier_name: Optional[str] = None
    price: Optional[Decimal] = Field(
        default=None,
        description="Price of the chosen supplier for the product, None if it has no offer"
    )
    frequency: int = Field(default=0, ge=0, description="Learned frequency after the override")
    preference_updated: bool = False


class PreferenceStats(BaseModel):
    """Statistics about one user's learned item preferences."""

    total_preferences: int = 0
    unique_items: int = 0
    unique_products: int = 0
    unique_suppliers: int = 0
    avg_frequency: float = 0.0
    max_frequency: int = 0
    recent_usage: int = Field(default=0, description="Preferences used in the last 7 days")


class PreferencesSummary(BaseModel):
    """Which of a set of order items already have a learned preference."""

    total_items: int
    items_with_preferences: int
    coverage_percentage: float
    preferences: Dict[str, dict] = Field(default_factory=dict)
