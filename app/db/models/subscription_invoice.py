import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey

from app.db.base import Base


class InvoiceStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    PAID = "PAID"
    FAILED = "FAILED"


class SubscriptionInvoice(Base):
    __tablename__ = "subscription_invoices"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    square_invoice_id = Column(String, nullable=True, index=True)
    public_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default=InvoiceStatus.PENDING.value)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    due_date = Column(Date, nullable=True)
    paid_at = Column(DateTime, nullable=True)
