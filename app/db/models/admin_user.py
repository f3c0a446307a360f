from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from app.db.base import Base


class AdminUser(Base):
    """Operator account for the admin dashboard."""
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="ROLE_OPERATOR")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)
