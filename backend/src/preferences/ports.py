"""Preference store port and learned-preference value types.

Two independently keyed preference kinds exist:
- ItemPreference: unique per (user_id, case-folded original_item); maps an
  order item text to the product the user chose for it
- SupplierPreference: unique per (case-folded original_item, product_id,
  supplier_id); product_id None means "applies regardless of product"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def preference_key(original_item: str) -> str:
    """Lookup key for learned preferences: case-folded exact text, no trimming."""
    return original_item.casefold()


@dataclass(frozen=True)
class ItemPreference:
    """Learned item -> product (and optional supplier) mapping for one user.

    Attributes:
        user_id: Owner of the preference
        original_item: Item text as last confirmed
        product_id: Preferred catalog product
        supplier_id: Supplier chosen together with the product (optional)
        frequency: Number of confirmations (>= 1)
        last_used: Time of the latest confirmation
        created_at: Time of the first confirmation (<= last_used)
        id: Store identifier (optional)
        product_description: Description of the preferred product (optional)
        supplier_name: Name of the chosen supplier (optional)
    """
    user_id: int
    original_item: str
    product_id: int
    supplier_id: Optional[int]
    frequency: int
    last_used: datetime
    created_at: datetime
    id: Optional[int] = None
    product_description: Optional[str] = None
    supplier_name: Optional[str] = None


@dataclass(frozen=True)
class SupplierPreference:
    """Learned item -> supplier choice.

    Attributes:
        original_item: Item text as last confirmed
        product_id: Product the choice applies to (None = any product)
        supplier_id: Preferred supplier
        frequency: Number of confirmations (>= 1)
        last_used: Time of the latest confirmation
        created_at: Time of the first confirmation (<= last_used)
        id: Store identifier (optional)
        supplier_name: Name of the preferred supplier (optional)
    """
    original_item: str
    product_id: Optional[int]
    supplier_id: int
    frequency: int
    last_used: datetime
    created_at: datetime
    id: Optional[int] = None
    supplier_name: Optional[str] = None


@dataclass(frozen=True)
class SupplierPreferenceUpdate:
    """One entry of a batch supplier-preference upsert."""
    original_item: str
    supplier_id: int
    product_id: Optional[int] = None


class PreferenceStore(ABC):
    """Port interface for reading and writing learned preferences.

    Implementations must make every upsert atomic per key (no lost increments
    under concurrent writers) and apply batch upserts all-or-nothing.
    Failures are reported as PreferenceStoreUnavailable.
    """

    # ---- item preferences -------------------------------------------------

    @abstractmethod
    def get_item_preference(self, user_id: int, original_item: str) -> Optional[ItemPreference]:
        """Exact case-insensitive lookup of a user's item preference."""
        pass

    @abstractmethod
    def get_item_preferences(self, user_id: int, items: Sequence[str]) -> Dict[str, ItemPreference]:
        """Bulk lookup keyed by case-folded item text (missing items omitted)."""
        pass

    @abstractmethod
    def list_item_preferences(self, user_id: int) -> List[ItemPreference]:
        """All item preferences of a user, most recently used first."""
        pass

    @abstractmethod
    def upsert_item_preference(
        self,
        user_id: int,
        original_item: str,
        product_id: int,
        supplier_id: Optional[int] = None
    ) -> ItemPreference:
        """Insert with frequency 1 or increment frequency and refresh last_used."""
        pass

    @abstractmethod
    def delete_item_preference(self, user_id: int, original_item: str) -> bool:
        """Delete a user's item preference. Returns True if one was removed."""
        pass

    # ---- supplier preferences ---------------------------------------------

    @abstractmethod
    def get_supplier_preference(
        self,
        original_item: str,
        product_id: Optional[int]
    ) -> Optional[SupplierPreference]:
        """Strongest supplier preference for (item, product).

        Ordered by frequency DESC, last_used DESC.
        """
        pass

    @abstractmethod
    def upsert_supplier_preference(
        self,
        original_item: str,
        supplier_id: int,
        product_id: Optional[int] = None
    ) -> SupplierPreference:
        """Insert with frequency 1 or increment frequency and refresh last_used."""
        pass

    @abstractmethod
    def batch_upsert_supplier_preferences(
        self,
        updates: Sequence[SupplierPreferenceUpdate]
    ) -> List[SupplierPreference]:
        """Apply several supplier upserts in a single transaction."""
        pass

    # ---- retention --------------------------------------------------------

    @abstractmethod
    def cleanup(self, days_old: int) -> int:
        """Delete preferences with frequency <= 1 unused for more than days_old days.

        Returns:
            Number of preferences removed (both kinds)
        """
        pass
