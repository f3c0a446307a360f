from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.db.models.payment_record import PaymentRecord


def exists_by_square_id(db: Session, square_payment_id: str) -> bool:
    return db.query(PaymentRecord.id).filter(
        PaymentRecord.square_payment_id == square_payment_id
    ).first() is not None


def latest_created_at(db: Session) -> Optional[datetime]:
    latest = db.query(PaymentRecord).order_by(PaymentRecord.created_at.desc()).first()
    return latest.created_at if latest else None


def query_history(db: Session, student_id: Optional[str] = None):
    query = db.query(PaymentRecord)
    if student_id:
        query = query.filter(PaymentRecord.student_id == student_id)
    return query.order_by(PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
