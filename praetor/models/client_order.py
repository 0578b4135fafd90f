"""ClientOrder model."""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class OrderStatus(enum.Enum):
    """Client order status enum."""
    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    DENIED = "denied"


def _utcnow():
    return datetime.now(timezone.utc)


class ClientOrder(Base):
    """
    Client (sale) order.

    When linked_quote_id is set the commercial terms were copied from a quote
    and are frozen; only status may change.
    """

    __tablename__ = 'client_order'

    id = Column(IdType, primary_key=True, autoincrement=True)
    linked_quote_id = Column(IdType, nullable=True, index=True)
    client_id = Column(IdType, nullable=False, index=True)
    client_name = Column(String(255), nullable=False)
    payment_terms = Column(String(50), nullable=True, default='immediate')
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=OrderStatus.DRAFT.value)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now(), onupdate=_utcnow)

    # Relationships
    items = relationship(
        'ClientOrderItem', back_populates='order', cascade='all, delete-orphan',
        order_by='ClientOrderItem.id'
    )

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<ClientOrder(id={self.id}, status='{self.status}', linked_quote_id={self.linked_quote_id})>"

    @property
    def is_draft(self):
        return self.status == OrderStatus.DRAFT.value
