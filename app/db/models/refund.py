import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey

from app.db.base import Base


class RefundStatus(str, enum.Enum):
    REQUESTED = "REQUESTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    ERROR = "ERROR"


class SubscriptionRefund(Base):
    __tablename__ = "subscription_refunds"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=False, index=True)

    requested_amount = Column(Numeric(12, 2), nullable=False)
    processing_fee = Column(Numeric(12, 2), nullable=False, default=0)
    approved_amount = Column(Numeric(12, 2), nullable=True)
    refunded_amount = Column(Numeric(12, 2), nullable=True)

    status = Column(String, nullable=False, default=RefundStatus.REQUESTED.value, index=True)
    refund_reason = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    square_refund_id = Column(String, nullable=True)

    # Weak references to users.id; the user may be deleted later
    requested_by_user_id = Column(Integer, nullable=True)
    approved_by_user_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    approved_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    @property
    def net_refund_amount(self) -> Decimal:
        """Amount actually returned to the customer once approved."""
        if self.approved_amount is None:
            return Decimal("0.00")
        return Decimal(self.approved_amount) - Decimal(self.processing_fee or 0)
