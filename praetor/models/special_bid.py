"""SpecialBid model - client/product specific price agreement."""
from sqlalchemy import Column, String, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class SpecialBid(Base):
    """Special price agreement overriding the catalog price for one client and product."""

    __tablename__ = 'special_bid'

    id = Column(IdType, primary_key=True, autoincrement=True)
    client_id = Column(IdType, ForeignKey('client.id'), nullable=False)
    client_name = Column(String(255), nullable=False)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=False)
    product_name = Column(String(255), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    mol_percentage = Column(Numeric(5, 2), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product', foreign_keys=[product_id])

    def __repr__(self):
        return f"<SpecialBid(id={self.id}, client_id={self.client_id}, product_id={self.product_id}, price={self.unit_price})>"
