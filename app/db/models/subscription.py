import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Text

from app.db.base import Base


class SubscriptionStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"
    ERROR = "ERROR"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    square_subscription_id = Column(String, unique=True, nullable=False, index=True)
    square_customer_id = Column(String, nullable=False, index=True)
    square_plan_id = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default=SubscriptionStatus.PENDING.value, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    billing_cycle = Column(String, nullable=True, default="MONTHLY")

    # Installment schedule
    amount_per_payment = Column(Numeric(12, 2), nullable=True)
    frequency = Column(String, nullable=True)  # WEEKLY | BIWEEKLY | MONTHLY
    estimated_end_date = Column(Date, nullable=True)
    number_of_payments = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    canceled_at = Column(DateTime, nullable=True)
