"""QuoteItem model for quote line items."""
from sqlalchemy import Column, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from praetor.database import Base, IdType


class QuoteItem(Base):
    """
    Quote line item.

    The product_* / special_bid_* columns are a snapshot of the catalog taken
    when the line was resolved; later catalog changes never touch them.
    """

    __tablename__ = 'quote_item'

    id = Column(IdType, primary_key=True, autoincrement=True)
    quote_id = Column(IdType, ForeignKey('quote.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(IdType, nullable=False)
    product_name = Column(String(255), nullable=False)
    special_bid_id = Column(IdType, nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    note = Column(Text, nullable=True)

    # Snapshot
    product_cost = Column(Numeric(14, 2), nullable=False, default=0)
    product_tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    product_mol_percentage = Column(Numeric(5, 2), nullable=True)
    special_bid_unit_price = Column(Numeric(14, 2), nullable=True)
    special_bid_mol_percentage = Column(Numeric(5, 2), nullable=True)

    # Relationships
    quote = relationship('Quote', back_populates='items')

    def __repr__(self):
        return f"<QuoteItem(id={self.id}, quote_id={self.quote_id}, product='{self.product_name}', qty={self.quantity})>"
