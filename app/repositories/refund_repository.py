from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models.refund import SubscriptionRefund, RefundStatus


def get(db: Session, refund_id: int) -> Optional[SubscriptionRefund]:
    return db.query(SubscriptionRefund).filter(SubscriptionRefund.id == refund_id).first()


def query_all(db: Session):
    return db.query(SubscriptionRefund).order_by(
        SubscriptionRefund.created_at.desc(), SubscriptionRefund.id.desc()
    )


def query_by_status(db: Session, status: str):
    return query_all(db).filter(SubscriptionRefund.status == status)


def query_by_subscription(db: Session, subscription_id: int):
    return query_all(db).filter(SubscriptionRefund.subscription_id == subscription_id)


def list_pending_approvals(db: Session) -> List[SubscriptionRefund]:
    return db.query(SubscriptionRefund).filter(
        SubscriptionRefund.status.in_([RefundStatus.REQUESTED.value, RefundStatus.PENDING_APPROVAL.value])
    ).order_by(SubscriptionRefund.created_at, SubscriptionRefund.id).all()


def count_by_statuses(db: Session, statuses: Iterable[str]) -> int:
    return db.query(SubscriptionRefund).filter(SubscriptionRefund.status.in_(list(statuses))).count()


def list_approved_without_square_refund(db: Session) -> List[SubscriptionRefund]:
    return db.query(SubscriptionRefund).filter(
        SubscriptionRefund.status == RefundStatus.APPROVED.value,
        SubscriptionRefund.square_refund_id.is_(None),
    ).order_by(SubscriptionRefund.approved_at, SubscriptionRefund.id).all()


def list_created_between(db: Session, start: datetime, end: datetime) -> List[SubscriptionRefund]:
    return db.query(SubscriptionRefund).filter(
        SubscriptionRefund.created_at >= start,
        SubscriptionRefund.created_at <= end,
    ).order_by(SubscriptionRefund.created_at.desc()).all()


def sum_column(db: Session, column, statuses: Iterable[str], subscription_id: Optional[int] = None) -> Decimal:
    query = db.query(func.coalesce(func.sum(column), 0)).filter(
        SubscriptionRefund.status.in_(list(statuses))
    )
    if subscription_id is not None:
        query = query.filter(SubscriptionRefund.subscription_id == subscription_id)
    total = query.scalar()
    return Decimal(str(total)).quantize(Decimal("0.01"))
