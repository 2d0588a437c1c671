"""Picklist summary aggregation and validation."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from pricing.decision import CONFIDENCE_SCORES
from .schemas import CENTS, PicklistEntry, PicklistSummary, ValidationReport

logger = logging.getLogger(__name__)


def _parse_total(value: str) -> Optional[Decimal]:
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        return None


def summarize(entries: Sequence[PicklistEntry]) -> PicklistSummary:
    """Compute aggregate statistics over picklist entries.

    Totals that can't be parsed ("N/A") are ignored. Back-ordered entries
    count as unmatched and are left out of the supplier breakdown.

    Args:
        entries: Picklist entries

    Returns:
        PicklistSummary
    """
    summary = PicklistSummary(total_items=len(entries))
    total = Decimal("0")
    confidence_total = 0.0

    for entry in entries:
        summary.total_quantity += entry.quantity
        confidence_total += CONFIDENCE_SCORES[entry.decision.confidence]

        if entry.is_error:
            summary.error_count += 1

        line_total = _parse_total(entry.total_price)
        if line_total is not None:
            total += line_total

        if entry.decision.is_back_order:
            summary.unmatched_items += 1
            continue

        if line_total is not None:
            supplier = entry.supplier_name
            summary.supplier_breakdown[supplier] = summary.supplier_breakdown.get(supplier, Decimal("0.00")) + line_total

        if entry.is_preference_match:
            summary.preference_matches += 1
        else:
            summary.system_optimized += 1

    summary.total_price = total.quantize(CENTS)
    if entries:
        summary.average_confidence = round(confidence_total / len(entries), 2)
    return summary


def validate_entries(entries: Sequence[PicklistEntry]) -> ValidationReport:
    """Check picklist entries for missing data and unresolved items.

    Errors: missing item text, non-positive quantity.
    Warnings: back-ordered items, items without a price.
    """
    report = ValidationReport()

    for position, entry in enumerate(entries, start=1):
        if not entry.original_item or not entry.original_item.strip():
            report.errors.append(f"Item {position}: Missing or invalid item name")
        if entry.quantity is None or entry.quantity <= 0:
            report.errors.append(f"Item {position}: Missing or invalid quantity")

        if entry.decision.is_back_order:
            report.warnings.append(f"Item {position}: No supplier found for \"{entry.original_item}\"")
        elif entry.unit_price is None:
            report.warnings.append(f"Item {position}: No price found for \"{entry.original_item}\"")

    if report.errors:
        logger.info(f"Picklist validation found {len(report.errors)} errors")
    return report
