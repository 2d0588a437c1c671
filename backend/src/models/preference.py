"""Learned preference SQLAlchemy models.

Both tables carry a case-folded lookup key next to the item text as last
confirmed. Upserts target the unique constraints below with
INSERT ... ON CONFLICT DO UPDATE.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base

# matched_product_key value of supplier preferences that apply to any product
ANY_PRODUCT_KEY = 0


class ItemPreference(Base):
    """User's learned mapping from an order item text to a product.

    Unique per (user_id, original_item_key).
    """
    __tablename__ = "item_preference"
    __table_args__ = (
        UniqueConstraint("user_id", "original_item_key", name="uq_item_preference_user_item"),
        CheckConstraint("frequency >= 1", name="ck_item_preference_frequency"),
        Index("ix_item_preference_last_used", "last_used"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    original_item = Column(Text, nullable=False)
    original_item_key = Column(Text, nullable=False)  # casefold(original_item)
    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("supplier.id", ondelete="SET NULL"), nullable=True)
    frequency = Column(Integer, nullable=False, default=1)
    last_used = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    product = relationship("Product")
    supplier = relationship("Supplier")


class SupplierPreference(Base):
    """Learned choice of supplier for an order item text.

    Unique per (original_item_key, matched_product_key, preferred_supplier_id).
    matched_product_key mirrors product_id, with 0 meaning "any product", so
    that product-agnostic preferences are covered by the unique constraint.
    """
    __tablename__ = "supplier_preference"
    __table_args__ = (
        UniqueConstraint(
            "original_item_key", "matched_product_key", "preferred_supplier_id",
            name="uq_supplier_preference_item_product_supplier",
        ),
        CheckConstraint("frequency >= 1", name="ck_supplier_preference_frequency"),
        Index("ix_supplier_preference_lookup", "original_item_key", "matched_product_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_item = Column(Text, nullable=False)
    original_item_key = Column(Text, nullable=False)
    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=True)
    matched_product_key = Column(Integer, nullable=False, default=ANY_PRODUCT_KEY)
    preferred_supplier_id = Column(Integer, ForeignKey("supplier.id", ondelete="CASCADE"), nullable=False)
    frequency = Column(Integer, nullable=False, default=1)
    last_used = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    product = relationship("Product")
    supplier = relationship("Supplier")
