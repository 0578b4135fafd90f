"""ClientOrderItem model for order line items."""
from sqlalchemy import Column, String, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from praetor.database import Base, IdType


class ClientOrderItem(Base):
    """Order line item with the same catalog snapshot as QuoteItem (no tax rate)."""

    __tablename__ = 'client_order_item'

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(IdType, ForeignKey('client_order.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(IdType, nullable=False)
    product_name = Column(String(255), nullable=False)
    special_bid_id = Column(IdType, nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    note = Column(Text, nullable=True)

    # Snapshot
    product_cost = Column(Numeric(14, 2), nullable=False, default=0)
    product_mol_percentage = Column(Numeric(5, 2), nullable=True)
    special_bid_unit_price = Column(Numeric(14, 2), nullable=True)
    special_bid_mol_percentage = Column(Numeric(5, 2), nullable=True)

    # Relationships
    order = relationship('ClientOrder', back_populates='items')

    def __repr__(self):
        return f"<ClientOrderItem(id={self.id}, order_id={self.order_id}, product='{self.product_name}', qty={self.quantity})>"
