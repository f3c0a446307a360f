from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text

from app.db.base import Base


class ManagedService(Base):
    __tablename__ = "managed_services"

    id = Column(Integer, primary_key=True, index=True)
    service_name = Column(String, unique=True, nullable=False, index=True)
    service_url = Column(String, nullable=False)
    service_port = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)
    healthy = Column(Boolean, nullable=False, default=False)
    health_check_url = Column(String, nullable=True)
    logs_url = Column(String, nullable=True)
    last_health_check = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def full_url(self) -> str:
        return f"{self.service_url}:{self.service_port}"
