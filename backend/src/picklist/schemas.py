"""Picklist input and output types.

OrderItem is validated input (pydantic). PicklistEntry, PicklistSummary,
ValidationReport and PicklistResult are plain result values.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from errors import BatchItemError
from matching.ports import CatalogProduct
from pricing.decision import SupplierDecision

NOT_AVAILABLE = "N/A"
ERROR_PRICE = "Error"
CENTS = Decimal("0.01")


class OrderItem(BaseModel):
    """One line of an order: free item text and a positive quantity."""

    raw_text: str = Field(..., min_length=1, description="Item text as it appeared on the order")
    quantity: int = Field(..., gt=0, description="Ordered quantity")

    @field_validator("raw_text")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Item text must not be blank")
        return v


def format_total_price(price: Optional[Decimal], quantity: int) -> str:
    """price * quantity with two decimals (half up), or "N/A" without a price."""
    if price is None:
        return NOT_AVAILABLE
    return str((Decimal(price) * quantity).quantize(CENTS, rounding=ROUND_HALF_UP))


@dataclass
class PicklistEntry:
    """Resolved picklist line.

    Attributes:
        index: Position of the item in the order
        original_item: Item text as it appeared on the order
        quantity: Ordered quantity
        matched_product: Resolved product (None if nothing matched)
        decision: Supplier decision
        is_preference: True if a learned item preference resolved the product
        preference_frequency: Confirmations of that item preference
        strategy_name: Matching strategy or "item_preference"
        match_score: Strategy score
        error: Error message when processing the item failed
    """
    index: int
    original_item: str
    quantity: int
    matched_product: Optional[CatalogProduct]
    decision: SupplierDecision
    is_preference: bool = False
    preference_frequency: int = 0
    strategy_name: Optional[str] = None
    match_score: float = 0.0
    error: Optional[str] = None

    @property
    def supplier_name(self) -> str:
        return self.decision.supplier_name

    @property
    def unit_price(self) -> Optional[Decimal]:
        return self.decision.price

    @property
    def total_price(self) -> str:
        return format_total_price(self.decision.price, self.quantity)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_preference_match(self) -> bool:
        """Either the product or the supplier came from a learned preference."""
        return self.is_preference or self.decision.is_user_preferred

    def to_dict(self) -> dict:
        """Convert entry to dictionary representation."""
        if self.is_error:
            unit_price = ERROR_PRICE
        else:
            unit_price = str(self.unit_price) if self.unit_price is not None else None
        return {
            "index": self.index,
            "original_item": self.original_item,
            "quantity": self.quantity,
            "matched_product": {
                "id": self.matched_product.id,
                "description": self.matched_product.description,
            } if self.matched_product else None,
            "supplier": self.supplier_name,
            "unit_price": unit_price,
            "total_price": self.total_price,
            "is_preference": self.is_preference,
            "preference_frequency": self.preference_frequency,
            "strategy": self.strategy_name,
            "match_score": self.match_score,
            "decision": self.decision.to_dict(),
            "error": self.error,
        }


@dataclass
class PicklistSummary:
    """Aggregate statistics of a picklist."""
    total_items: int = 0
    total_quantity: int = 0
    total_price: Decimal = Decimal("0.00")
    supplier_breakdown: Dict[str, Decimal] = field(default_factory=dict)
    unmatched_items: int = 0
    preference_matches: int = 0
    system_optimized: int = 0
    error_count: int = 0
    average_confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_items": self.total_items,
            "total_quantity": self.total_quantity,
            "total_price": str(self.total_price),
            "supplier_breakdown": {name: str(amount) for name, amount in self.supplier_breakdown.items()},
            "unmatched_items": self.unmatched_items,
            "preference_matches": self.preference_matches,
            "system_optimized": self.system_optimized,
            "error_count": self.error_count,
            "average_confidence": self.average_confidence,
        }


@dataclass
class ValidationReport:
    """Result of checking a picklist before it is used."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"is_valid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


@dataclass
class PicklistResult:
    """Output of one batch: entries in order, summary and item errors."""
    batch_id: str
    entries: List[PicklistEntry]
    summary: PicklistSummary
    validation: ValidationReport
    errors: List[BatchItemError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "entries": [entry.to_dict() for entry in self.entries],
            "summary": self.summary.to_dict(),
            "validation": self.validation.to_dict(),
            "errors": [error.to_dict() for error in self.errors],
        }
