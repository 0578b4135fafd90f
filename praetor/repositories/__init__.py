"""Repository seams between the commercial engine and the database."""
from praetor.repositories.catalog_repository import (
    CatalogRepository, CatalogRecord, SpecialPriceRecord
)

__all__ = ['CatalogRepository', 'CatalogRecord', 'SpecialPriceRecord']
