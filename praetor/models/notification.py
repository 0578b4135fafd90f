"""Notification model."""
import json
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class Notification(Base):
    """In-app notification queued for a user. Delivery is handled elsewhere."""

    __tablename__ = 'notification'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey('app_user.id'), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    data = Column(Text, nullable=True)  # JSON
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"

    @property
    def payload(self):
        """Decoded `data` column."""
        return json.loads(self.data) if self.data else {}
