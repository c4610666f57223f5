from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
import enum

from community_watch.core.database import Base


class UserRole(str, enum.Enum):
    """Administrator roles accepted when creating users"""
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class User(Base):
    """Administrator account"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Open string in storage; the intake schema restricts it to UserRole values
    role = Column(String(50), default=UserRole.ADMIN.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
