"""User ORM model: the authenticated identity behind every request."""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SAEnum
from suivi.database import Base


class Role(str, enum.Enum):
    reader = "Reader"
    editor = "Editor"
    admin = "Admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    login = Column(String(100), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(SAEnum(Role), nullable=False, default=Role.reader)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
