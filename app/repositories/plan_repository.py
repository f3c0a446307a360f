from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.models.payment_plan import PaymentPlan, PlanStatus


def get(db: Session, plan_id: int) -> Optional[PaymentPlan]:
    return db.query(PaymentPlan).filter(PaymentPlan.id == plan_id).first()


def list_active_for_student(db: Session, student_id: str) -> List[PaymentPlan]:
    return db.query(PaymentPlan).filter(
        PaymentPlan.student_id == student_id,
        PaymentPlan.status == PlanStatus.ACTIVE.value,
    ).order_by(PaymentPlan.created_at, PaymentPlan.id).all()


def get_by_invoice_id(db: Session, invoice_id: str) -> Optional[PaymentPlan]:
    return db.query(PaymentPlan).filter(PaymentPlan.invoice_id == invoice_id).first()


def query_filtered(db: Session, student_id: Optional[str] = None, status: Optional[str] = None):
    query = db.query(PaymentPlan)
    if student_id:
        query = query.filter(PaymentPlan.student_id == student_id)
    if status:
        query = query.filter(PaymentPlan.status == status)
    return query.order_by(PaymentPlan.created_at.desc(), PaymentPlan.id.desc())
