"""Product (catalog item) model."""
from sqlalchemy import Column, String, Boolean, Numeric, DateTime
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class Product(Base):
    """
    Catalog item.

    cost, tax_rate and mol_percentage are the authoritative figures copied onto
    quote/order lines when they are resolved.
    """

    __tablename__ = 'product'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    product_code = Column(String(50), nullable=True)
    cost = Column(Numeric(14, 2), nullable=False, default=0, server_default='0.00')
    tax_rate = Column(Numeric(5, 2), nullable=True)  # percent
    mol_percentage = Column(Numeric(5, 2), nullable=True)  # margin on list, percent
    is_disabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.product_code}', name='{self.name}')>"
