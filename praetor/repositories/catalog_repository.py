"""Catalog lookups used by snapshot resolution and project naming."""

from collections import namedtuple
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from praetor.models import Client, Product, SpecialBid

CatalogRecord = namedtuple('CatalogRecord', ['id', 'cost', 'tax_rate', 'mol_percentage'])
SpecialPriceRecord = namedtuple('SpecialPriceRecord', ['id', 'product_id', 'unit_price', 'mol_percentage'])


class CatalogRepository:
    """
    Read-only catalog access backed by SQLAlchemy.

    Every lookup is a single batched query (`IN (...)`) regardless of how many
    ids are requested.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_catalog_items(self, ids: Iterable[int]) -> List[CatalogRecord]:
        ids = list(set(ids))
        if not ids:
            return []
        rows = self.session.query(
            Product.id, Product.cost, Product.tax_rate, Product.mol_percentage
        ).filter(Product.id.in_(ids)).all()
        return [CatalogRecord(*row) for row in rows]

    def get_special_prices(self, ids: Iterable[int]) -> List[SpecialPriceRecord]:
        ids = list(set(ids))
        if not ids:
            return []
        rows = self.session.query(
            SpecialBid.id, SpecialBid.product_id, SpecialBid.unit_price, SpecialBid.mol_percentage
        ).filter(SpecialBid.id.in_(ids)).all()
        return [SpecialPriceRecord(*row) for row in rows]

    def get_client_code(self, client_id: int) -> Optional[str]:
        row = self.session.query(Client.client_code).filter(Client.id == client_id).first()
        return row[0] if row else None

    def get_product_codes(self, ids: Iterable[int]) -> Dict[int, Optional[str]]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = self.session.query(Product.id, Product.product_code).filter(Product.id.in_(ids)).all()
        return {product_id: code for product_id, code in rows}
