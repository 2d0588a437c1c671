"""Picklist generation: batch orchestration, summary and validation."""

from .schemas import OrderItem, PicklistEntry, PicklistResult, PicklistSummary, ValidationReport
from .summary import summarize, validate_entries
from .service import PicklistService

__all__ = [
    "OrderItem",
    "PicklistEntry",
    "PicklistResult",
    "PicklistSummary",
    "ValidationReport",
    "summarize",
    "validate_entries",
    "PicklistService",
]
