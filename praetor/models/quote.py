"""Quote model for client quotes."""
import enum
from datetime import datetime, time, timezone
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    QUOTED = "quoted"
    CONFIRMED = "confirmed"


def is_quote_expired(status, expiration_date, now=None):
    """
    Expiration is computed, never stored.

    A confirmed quote never expires. Otherwise the quote is valid through the
    whole calendar day of `expiration_date` (UTC); any time-of-day component on
    the expiration value is dropped first.
    """
    if status == QuoteStatus.CONFIRMED.value:
        return False
    if not expiration_date:
        return False

    if isinstance(expiration_date, datetime):
        expiration_date = expiration_date.date()
    elif isinstance(expiration_date, str):
        expiration_date = datetime.strptime(expiration_date.split('T')[0], '%Y-%m-%d').date()

    end_of_day = datetime.combine(expiration_date, time.max, tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now > end_of_day


def _utcnow():
    return datetime.now(timezone.utc)


class Quote(Base):
    """
    Client quote.

    Once confirmed a quote is read-only; orders created from it point back
    through ClientOrder.linked_quote_id.
    """

    __tablename__ = 'quote'

    id = Column(IdType, primary_key=True, autoincrement=True)
    quote_code = Column(String(64), nullable=False, unique=True)
    client_id = Column(IdType, nullable=False, index=True)
    client_name = Column(String(255), nullable=False)
    payment_terms = Column(String(50), nullable=True, default='immediate')
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=QuoteStatus.QUOTED.value)
    expiration_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now(), onupdate=_utcnow)

    # Relationships
    items = relationship(
        'QuoteItem', back_populates='quote', cascade='all, delete-orphan',
        order_by='QuoteItem.id'
    )

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<Quote(id={self.id}, code='{self.quote_code}', status='{self.status}')>"

    @property
    def is_expired(self):
        """Check if quote is expired (calculated, not stored)."""
        return is_quote_expired(self.status, self.expiration_date)

    @property
    def is_confirmed(self):
        return self.status == QuoteStatus.CONFIRMED.value
