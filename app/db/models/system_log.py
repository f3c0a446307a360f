from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text

from app.db.base import Base


class SystemLog(Base):
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    received_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    hostname = Column(String(255), nullable=False)
    program = Column(String(255), nullable=False)
    severity = Column(Integer, nullable=False)
    facility = Column(Integer, nullable=False)
    message = Column(Text, nullable=False)
