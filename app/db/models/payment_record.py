from datetime import datetime

from sqlalchemy import Column, Integer, String, Numeric, DateTime

from app.db.base import Base


class PaymentRecord(Base):
    """Payment imported from Square; rows are never updated."""
    __tablename__ = "payment_records"

    id = Column(Integer, primary_key=True, index=True)
    square_payment_id = Column(String, unique=True, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String, nullable=False, default="UNKNOWN")
    student_id = Column(String, nullable=True, index=True)
    receipt_url = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)
