"""Project model."""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class Project(Base):
    """Project (work record). Created automatically when a client order is confirmed."""

    __tablename__ = 'project'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    client_id = Column(IdType, ForeignKey('client.id'), nullable=False)
    color = Column(String(20), nullable=False, default='#3b82f6')
    description = Column(Text, nullable=True)
    is_disabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', client_id={self.client_id})>"
