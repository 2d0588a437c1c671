"""SQL catalog repository for the matching strategies"""

from typing import List, Optional, Sequence

from sqlalchemy import func, or_, select

from errors import StoreUnavailable
from matching.ports import CatalogCandidate, CatalogStore
from matching.scorer import rank_descriptions
from models.catalog import Product, Supplier, SupplierPrice
from .session import store_session


def _catalog_error(message: str) -> StoreUnavailable:
    return StoreUnavailable("catalog", message)


class SQLCatalogStore(CatalogStore):
    """CatalogStore backed by the product, supplier and supplier_price tables.

    Description tests are case-insensitive LIKE '%...%' with wildcards in the
    search text escaped. Rows come back cheapest first.
    """

    def __init__(self, session_factory):
        """Initialize repository with a session factory.

        Args:
            session_factory: SQLAlchemy sessionmaker
        """
        self.session_factory = session_factory

    @staticmethod
    def _description_contains(text: str):
        return func.lower(Product.description).contains(text.lower(), autoescape=True)

    def _offers(self, *conditions) -> List[CatalogCandidate]:
        query = (
            select(Product.id, Product.description, Supplier.id, Supplier.name, SupplierPrice.price)
            .join(SupplierPrice, SupplierPrice.product_id == Product.id)
            .join(Supplier, Supplier.id == SupplierPrice.supplier_id)
            .where(*conditions)
            .order_by(SupplierPrice.price, Product.id, Supplier.name)
        )
        with store_session(self.session_factory, _catalog_error) as session:
            rows = session.execute(query).all()
        return [
            CatalogCandidate(
                product_id=product_id,
                description=description,
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                price=price,
            )
            for product_id, description, supplier_id, supplier_name, price in rows
        ]

    def search_exact_substring(self, text: str) -> List[CatalogCandidate]:
        return self._offers(self._description_contains(text))

    def search_brand_category(
        self,
        brand: str,
        category_filter: Optional[Sequence[str]] = None
    ) -> List[CatalogCandidate]:
        conditions = [self._description_contains(brand)]
        if category_filter:
            conditions.append(or_(*(self._description_contains(keyword) for keyword in category_filter)))
        return self._offers(*conditions)

    def search_word_set(self, words: Sequence[str], min_matched: int = 2) -> List[CatalogCandidate]:
        if not words:
            return []
        # Pre-filter in SQL, rank in Python with the shared scorer
        rows = self._offers(or_(*(self._description_contains(word) for word in words)))
        ranks = rank_descriptions(words, {(row.product_id, row.description) for row in rows}, min_matched)
        ranked = [
            CatalogCandidate(
                product_id=row.product_id,
                description=row.description,
                supplier_id=row.supplier_id,
                supplier_name=row.supplier_name,
                price=row.price,
                rank=ranks[row.product_id],
            )
            for row in rows if row.product_id in ranks
        ]
        return sorted(ranked, key=lambda row: (-row.rank, row.price, row.product_id))

    def search_single_word(self, words: Sequence[str]) -> List[CatalogCandidate]:
        if not words:
            return []
        return self._offers(or_(*(self._description_contains(word) for word in words)))
