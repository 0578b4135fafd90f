"""AppUser model - the user directory read by the commercial engine."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from praetor.database import Base, IdType


class UserRole(enum.Enum):
    """Application roles."""
    ADMIN = 'admin'
    MANAGER = 'manager'
    USER = 'user'


class AppUser(Base):
    """Application user. Authentication lives outside this service."""

    __tablename__ = 'app_user'

    id = Column(IdType, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    is_disabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<AppUser(id={self.id}, username='{self.username}', role='{self.role}')>"

    def is_manager(self):
        """Managers (and admins) may handle quotes and orders."""
        return self.role in [UserRole.MANAGER.value, UserRole.ADMIN.value]
