import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from app.db.base import Base


class Permission(enum.IntFlag):
    VIEW_SUBSCRIPTIONS = 1
    CANCEL_SUBSCRIPTIONS = 2
    REQUEST_REFUNDS = 4
    APPROVE_REFUNDS = 8
    VIEW_REFUNDS = 16
    MANAGE_USERS = 32
    VIEW_USERS = 64
    SYSTEM_ADMIN = 128

    @property
    def code(self) -> str:
        return self.name.lower()

    @property
    def description(self) -> str:
        return PERMISSION_DESCRIPTIONS[self]

    @classmethod
    def all(cls) -> "Permission":
        combined = cls(0)
        for member in cls:
            combined |= member
        return combined

    @classmethod
    def members(cls):
        return [member for member in cls if member.value]


PERMISSION_DESCRIPTIONS = {
    Permission.VIEW_SUBSCRIPTIONS: "View subscriptions",
    Permission.CANCEL_SUBSCRIPTIONS: "Cancel subscriptions",
    Permission.REQUEST_REFUNDS: "Request refunds",
    Permission.APPROVE_REFUNDS: "Approve refunds",
    Permission.VIEW_REFUNDS: "View refunds",
    Permission.MANAGE_USERS: "Manage users",
    Permission.VIEW_USERS: "View users",
    Permission.SYSTEM_ADMIN: "System administrator",
}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    email = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    permission_mask = Column("permissions", Integer, nullable=False, default=int(Permission.VIEW_SUBSCRIPTIONS))
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def permissions(self) -> Permission:
        return Permission(self.permission_mask or 0)

    @permissions.setter
    def permissions(self, value: Permission) -> None:
        self.permission_mask = int(value)

    def permission_codes(self):
        granted = self.permissions
        return [p.name for p in Permission.members() if p in granted]
