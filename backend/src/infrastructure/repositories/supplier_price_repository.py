"""SQL supplier price repository"""

from typing import List, Optional

from sqlalchemy import func, select

from errors import StoreUnavailable
from models.catalog import Supplier as SupplierModel, SupplierPrice
from pricing.ports import Supplier, SupplierPriceOffer, SupplierPriceStore, offer_sort_key
from .session import store_session


def _price_error(message: str) -> StoreUnavailable:
    return StoreUnavailable("price", message)


class SQLSupplierPriceStore(SupplierPriceStore):
    """SupplierPriceStore backed by the supplier and supplier_price tables."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_offers_for_product(self, product_id: int) -> List[SupplierPriceOffer]:
        query = (
            select(SupplierModel.id, SupplierModel.name, SupplierPrice.price)
            .join(SupplierPrice, SupplierPrice.supplier_id == SupplierModel.id)
            .where(SupplierPrice.product_id == product_id)
            .order_by(SupplierPrice.price, SupplierModel.name)
        )
        with store_session(self.session_factory, _price_error) as session:
            rows = session.execute(query).all()
        offers = [
            SupplierPriceOffer(supplier_id=supplier_id, supplier_name=name, product_id=product_id, price=price)
            for supplier_id, name, price in rows
        ]
        return sorted(offers, key=offer_sort_key)

    def get_supplier_by_name(self, name: str) -> Optional[Supplier]:
        query = select(SupplierModel).where(func.lower(SupplierModel.name) == name.lower())
        with store_session(self.session_factory, _price_error) as session:
            supplier = session.execute(query).scalars().first()
            return Supplier(id=supplier.id, name=supplier.name) if supplier else None

    def get_supplier_by_id(self, supplier_id: int) -> Optional[Supplier]:
        with store_session(self.session_factory, _price_error) as session:
            supplier = session.get(SupplierModel, supplier_id)
            return Supplier(id=supplier.id, name=supplier.name) if supplier else None
