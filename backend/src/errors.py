"""Error taxonomy for picklist generation.

Every error raised while resolving one order item derives from
PicklistError. The batch orchestrator catches them at the per-item boundary
and turns them into a back-order entry; none of them reaches the caller of a
batch operation.
"""

from typing import Any, Dict, Optional


class PicklistError(Exception):
    """Base exception for matching, pricing and preference errors.

    Attributes:
        message: Human-readable message
        details: Additional context for logs
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a log/report friendly dictionary."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class InvalidOrderItem(PicklistError):
    """Order item text is too short (after normalization) to be matched."""

    def __init__(self, original_item: str, min_length: int):
        super().__init__(
            f"Item text too short to match: '{original_item}'",
            details={"original_item": original_item, "min_length": min_length},
        )


class NoMatchFound(PicklistError):
    """All matching strategies were exhausted without a candidate."""

    def __init__(self, original_item: str):
        super().__init__(
            f"No catalog match for '{original_item}'",
            details={"original_item": original_item},
        )


class NoSupplierAvailable(PicklistError):
    """A product was resolved but no supplier offers it."""

    def __init__(self, product_id: int):
        super().__init__(
            f"No supplier offers product {product_id}",
            details={"product_id": product_id},
        )


class StoreUnavailable(PicklistError):
    """An external store failed or did not answer in time."""

    def __init__(self, store: str, message: str):
        super().__init__(f"{store} unavailable: {message}", details={"store": store})
        self.store = store


class PreferenceStoreUnavailable(StoreUnavailable):
    """Reading or writing learned preferences failed."""

    def __init__(self, message: str):
        super().__init__("preference store", message)


class BatchItemError(PicklistError):
    """Uncaught failure while processing one item of a batch."""

    def __init__(self, index: int, original_item: str, cause: BaseException):
        super().__init__(
            str(cause) or type(cause).__name__,
            details={
                "index": index,
                "original_item": original_item,
                "cause": type(cause).__name__,
            },
        )
        self.index = index
        self.original_item = original_item
        self.cause = cause
