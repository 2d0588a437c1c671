"""Observability module.

Provides structured logging, batch correlation and Prometheus metrics.
"""

from .logging_config import configure_logging
from .metrics import (
    picklist_items_processed_total,
    picklist_batch_duration_seconds,
    match_strategy_hits_total,
    supplier_decisions_total,
    preference_writes_total,
    store_unavailable_total,
)
from .batch_id import batch_id_var, get_batch_id, generate_batch_id

__all__ = [
    # Logging
    "configure_logging",
    # Metrics
    "picklist_items_processed_total",
    "picklist_batch_duration_seconds",
    "match_strategy_hits_total",
    "supplier_decisions_total",
    "preference_writes_total",
    "store_unavailable_total",
    # Batch ID
    "batch_id_var",
    "get_batch_id",
    "generate_batch_id",
]
