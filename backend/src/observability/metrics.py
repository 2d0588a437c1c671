"""Prometheus metrics for picklist generation.

Defines operational metrics for the matching and supplier-selection engine.
"""

from prometheus_client import Counter, Histogram

# Batch metrics
picklist_items_processed_total = Counter(
    "picklist_items_processed_total",
    "Total number of order items processed",
    ["outcome"]  # outcome: preferred|optimized|back_order|error
)

picklist_batch_duration_seconds = Histogram(
    "picklist_batch_duration_seconds",
    "Time spent generating one picklist batch in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Matching metrics
match_strategy_hits_total = Counter(
    "picklist_match_strategy_hits_total",
    "Catalog matches by winning strategy",
    ["strategy"]  # strategy: exact_substring|brand_category|word_set|single_word|none
)

# Supplier decision metrics
supplier_decisions_total = Counter(
    "picklist_supplier_decisions_total",
    "Supplier decisions by confidence",
    ["confidence"]  # confidence: high|medium|low
)

# Preference metrics
preference_writes_total = Counter(
    "picklist_preference_writes_total",
    "Preference upserts",
    ["kind", "status"]  # kind: item|supplier|batch, status: success|error
)

store_unavailable_total = Counter(
    "picklist_store_unavailable_total",
    "External store calls that failed or timed out",
    ["store"]
)
