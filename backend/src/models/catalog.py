"""Catalog SQLAlchemy models: products, suppliers and their prices.

The catalog is read-only for the matching engine; it is maintained by an
external import process.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from .base import Base


class Supplier(Base):
    """Supplier offering catalog products.

    Supplier names are unique; "back order" is reserved for the fallback
    decision and never stored.
    """
    __tablename__ = "supplier"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    prices = relationship("SupplierPrice", back_populates="supplier")

    def to_dict(self):
        """Convert supplier to dictionary representation"""
        return {
            "id": self.id,
            "name": self.name,
        }


class Product(Base):
    """Catalog product, identified by its free-text description."""
    __tablename__ = "product"
    __table_args__ = (
        Index("ix_product_description", "description"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    prices = relationship("SupplierPrice", back_populates="product")

    def to_dict(self):
        """Convert product to dictionary representation"""
        return {
            "id": self.id,
            "description": self.description,
        }


class SupplierPrice(Base):
    """Price of one product at one supplier (one offer)."""
    __tablename__ = "supplier_price"
    __table_args__ = (
        UniqueConstraint("product_id", "supplier_id", name="uq_supplier_price_product_supplier"),
        Index("ix_supplier_price_product_id", "product_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("supplier.id", ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    product = relationship("Product", back_populates="prices")
    supplier = relationship("Supplier", back_populates="prices")
