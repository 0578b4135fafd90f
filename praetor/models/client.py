"""Client model."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class Client(Base):
    """Client (customer company). Only the fields the commercial engine reads are mapped."""

    __tablename__ = 'client'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    client_code = Column(String(50), nullable=True, unique=True)
    is_disabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Client(id={self.id}, code='{self.client_code}', name='{self.name}')>"
