"""SQL preference repository.

Upserts are single INSERT ... ON CONFLICT DO UPDATE statements so that
concurrent confirmations of the same key never lose an increment. last_used
only moves forward.
"""

import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import and_, case, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from errors import PreferenceStoreUnavailable
from models.catalog import Product, Supplier
from models.preference import ANY_PRODUCT_KEY
from models.preference import ItemPreference as ItemPreferenceModel
from models.preference import SupplierPreference as SupplierPreferenceModel
from preferences.ports import (
    ItemPreference,
    PreferenceStore,
    SupplierPreference,
    SupplierPreferenceUpdate,
    preference_key,
    utc_now,
)
from .session import as_utc, store_session

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _product_key(product_id: Optional[int]) -> int:
    return ANY_PRODUCT_KEY if product_id is None else product_id


def _later(column, candidate):
    return case((candidate > column, candidate), else_=column)


class SQLPreferenceStore(PreferenceStore):
    """PreferenceStore backed by the item_preference and supplier_preference tables.

    Supports PostgreSQL and SQLite (both provide ON CONFLICT DO UPDATE).
    """

    def __init__(self, session_factory, clock: Callable = utc_now):
        """Initialize repository.

        Args:
            session_factory: SQLAlchemy sessionmaker
            clock: Returns the current time
        """
        self.session_factory = session_factory
        self.clock = clock

    def _session(self):
        return store_session(self.session_factory, PreferenceStoreUnavailable)

    @staticmethod
    def _insert(session: Session, model):
        dialect = session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise PreferenceStoreUnavailable(f"Atomic upsert not supported on {dialect}")
        return insert(model)

    # ---- item preferences -------------------------------------------------

    def _item_query(self):
        return (
            select(ItemPreferenceModel, Product.description, Supplier.name)
            .join(Product, Product.id == ItemPreferenceModel.product_id)
            .outerjoin(Supplier, Supplier.id == ItemPreferenceModel.supplier_id)
        )

    @staticmethod
    def _to_item(row) -> ItemPreference:
        model, description, supplier_name = row
        return ItemPreference(
            id=model.id,
            user_id=model.user_id,
            original_item=model.original_item,
            product_id=model.product_id,
            supplier_id=model.supplier_id,
            frequency=model.frequency,
            last_used=as_utc(model.last_used),
            created_at=as_utc(model.created_at),
            product_description=description,
            supplier_name=supplier_name,
        )

    def get_item_preference(self, user_id: int, original_item: str) -> Optional[ItemPreference]:
        query = self._item_query().where(
            ItemPreferenceModel.user_id == user_id,
            ItemPreferenceModel.original_item_key == preference_key(original_item),
        )
        with self._session() as session:
            row = session.execute(query).first()
            return self._to_item(row) if row else None

    def get_item_preferences(self, user_id: int, items: Sequence[str]) -> Dict[str, ItemPreference]:
        keys = {preference_key(item) for item in items}
        if not keys:
            return {}
        query = self._item_query().where(
            ItemPreferenceModel.user_id == user_id,
            ItemPreferenceModel.original_item_key.in_(keys),
        )
        with self._session() as session:
            rows = session.execute(query).all()
            return {row[0].original_item_key: self._to_item(row) for row in rows}

    def list_item_preferences(self, user_id: int) -> List[ItemPreference]:
        query = (
            self._item_query()
            .where(ItemPreferenceModel.user_id == user_id)
            .order_by(ItemPreferenceModel.last_used.desc(), ItemPreferenceModel.frequency.desc())
        )
        with self._session() as session:
            return [self._to_item(row) for row in session.execute(query).all()]

    def upsert_item_preference(
        self,
        user_id: int,
        original_item: str,
        product_id: int,
        supplier_id: Optional[int] = None
    ) -> ItemPreference:
        now = self.clock()
        key = preference_key(original_item)
        with self._session() as session:
            stmt = self._insert(session, ItemPreferenceModel).values(
                user_id=user_id,
                original_item=original_item,
                original_item_key=key,
                product_id=product_id,
                supplier_id=supplier_id,
                frequency=1,
                last_used=now,
                created_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[ItemPreferenceModel.user_id, ItemPreferenceModel.original_item_key],
                set_={
                    "original_item": stmt.excluded.original_item,
                    "product_id": stmt.excluded.product_id,
                    "supplier_id": stmt.excluded.supplier_id,
                    "frequency": ItemPreferenceModel.frequency + 1,
                    "last_used": _later(ItemPreferenceModel.last_used, stmt.excluded.last_used),
                },
            )
            session.execute(stmt)
            row = session.execute(
                self._item_query().where(
                    ItemPreferenceModel.user_id == user_id,
                    ItemPreferenceModel.original_item_key == key,
                )
            ).one()
            return self._to_item(row)

    def delete_item_preference(self, user_id: int, original_item: str) -> bool:
        stmt = delete(ItemPreferenceModel).where(
            ItemPreferenceModel.user_id == user_id,
            ItemPreferenceModel.original_item_key == preference_key(original_item),
        )
        with self._session() as session:
            return session.execute(stmt).rowcount > 0

    # ---- supplier preferences ---------------------------------------------

    @staticmethod
    def _to_supplier(model: SupplierPreferenceModel, supplier_name: Optional[str]) -> SupplierPreference:
        return SupplierPreference(
            id=model.id,
            original_item=model.original_item,
            product_id=model.product_id,
            supplier_id=model.preferred_supplier_id,
            frequency=model.frequency,
            last_used=as_utc(model.last_used),
            created_at=as_utc(model.created_at),
            supplier_name=supplier_name,
        )

    def _supplier_query(self):
        return (
            select(SupplierPreferenceModel, Supplier.name)
            .join(Supplier, Supplier.id == SupplierPreferenceModel.preferred_supplier_id)
        )

    def get_supplier_preference(
        self,
        original_item: str,
        product_id: Optional[int]
    ) -> Optional[SupplierPreference]:
        query = (
            self._supplier_query()
            .where(
                SupplierPreferenceModel.original_item_key == preference_key(original_item),
                SupplierPreferenceModel.matched_product_key == _product_key(product_id),
            )
            .order_by(SupplierPreferenceModel.frequency.desc(), SupplierPreferenceModel.last_used.desc())
            .limit(1)
        )
        with self._session() as session:
            row = session.execute(query).first()
            return self._to_supplier(*row) if row else None

    def _upsert_supplier(self, session: Session, update: SupplierPreferenceUpdate, now) -> SupplierPreference:
        key = preference_key(update.original_item)
        product_key = _product_key(update.product_id)
        stmt = self._insert(session, SupplierPreferenceModel).values(
            original_item=update.original_item,
            original_item_key=key,
            product_id=update.product_id,
            matched_product_key=product_key,
            preferred_supplier_id=update.supplier_id,
            frequency=1,
            last_used=now,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                SupplierPreferenceModel.original_item_key,
                SupplierPreferenceModel.matched_product_key,
                SupplierPreferenceModel.preferred_supplier_id,
            ],
            set_={
                "original_item": stmt.excluded.original_item,
                "frequency": SupplierPreferenceModel.frequency + 1,
                "last_used": _later(SupplierPreferenceModel.last_used, stmt.excluded.last_used),
            },
        )
        session.execute(stmt)
        row = session.execute(
            self._supplier_query().where(
                SupplierPreferenceModel.original_item_key == key,
                SupplierPreferenceModel.matched_product_key == product_key,
                SupplierPreferenceModel.preferred_supplier_id == update.supplier_id,
            )
        ).one()
        return self._to_supplier(*row)

    def upsert_supplier_preference(
        self,
        original_item: str,
        supplier_id: int,
        product_id: Optional[int] = None
    ) -> SupplierPreference:
        update = SupplierPreferenceUpdate(original_item=original_item, supplier_id=supplier_id, product_id=product_id)
        with self._session() as session:
            return self._upsert_supplier(session, update, self.clock())

    def batch_upsert_supplier_preferences(
        self,
        updates: Sequence[SupplierPreferenceUpdate]
    ) -> List[SupplierPreference]:
        now = self.clock()
        # One session = one transaction; any failure rolls back every update
        with self._session() as session:
            results = [self._upsert_supplier(session, update, now) for update in updates]
        logger.debug(f"Batch upserted {len(results)} supplier preferences")
        return results

    # ---- retention --------------------------------------------------------

    def cleanup(self, days_old: int) -> int:
        cutoff = self.clock() - timedelta(days=days_old)
        with self._session() as session:
            removed_items = session.execute(
                delete(ItemPreferenceModel).where(
                    and_(ItemPreferenceModel.frequency <= 1, ItemPreferenceModel.last_used < cutoff)
                )
            ).rowcount
            removed_suppliers = session.execute(
                delete(SupplierPreferenceModel).where(
                    and_(SupplierPreferenceModel.frequency <= 1, SupplierPreferenceModel.last_used < cutoff)
                )
            ).rowcount
        return removed_items + removed_suppliers
