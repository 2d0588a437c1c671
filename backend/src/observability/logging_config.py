"""Structured JSON logging for picklist batches.

Every record carries the batch correlation id of the batch that emitted it,
including records logged from worker threads of a parallel batch.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .batch_id import get_batch_id

# Extra attributes copied into the JSON document when present on a record
EXTRA_FIELDS = ("user_id", "original_item", "strategy", "supplier", "product_id", "item_index")

PLAIN_FORMAT = "%(asctime)s - %(levelname)s - %(batch_id)s - %(module)s.%(funcName)s - %(message)s"


class BatchIDFilter(logging.Filter):
    """Stamp the current batch_id on every record (never filters anything out)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.batch_id = get_batch_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "batch_id": getattr(record, "batch_id", "no-batch-id"),
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["error"] = str(record.exc_info[1])
            log_data["traceback"] = self.formatException(record.exc_info)

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = str(getattr(record, field))

        return json.dumps(log_data)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON documents if True, else a plain one-line format
    """
    numeric_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    handler.addFilter(BatchIDFilter())
    root_logger.addHandler(handler)

    # SQL echo only at WARNING and above
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
