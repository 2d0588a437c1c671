"""Batch correlation id.

Every picklist batch gets its own id so that the log lines of one request can
be grouped. The orchestrator copies the context into worker threads.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

batch_id_var: ContextVar[Optional[str]] = ContextVar("batch_id", default=None)


def generate_batch_id() -> str:
    return str(uuid.uuid4())


def get_batch_id() -> str:
    """Current batch ID, or "no-batch-id" outside of a batch."""
    return batch_id_var.get() or "no-batch-id"
