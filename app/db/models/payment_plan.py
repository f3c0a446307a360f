import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Numeric, DateTime

from app.db.base import Base


class PlanStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETE = "COMPLETE"
    CANCELED = "CANCELED"
    ERROR = "ERROR"


class PlanCadence(str, enum.Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class PaymentPlan(Base):
    __tablename__ = "payment_plans"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    cadence = Column(String, nullable=False, default=PlanCadence.MONTHLY.value)

    total_due = Column(Numeric(12, 2), nullable=False)
    installment_amount = Column(Numeric(12, 2), nullable=False)
    remaining = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default=PlanStatus.ACTIVE.value, index=True)

    invoice_id = Column(String, nullable=True, index=True)
    invoice_url = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
