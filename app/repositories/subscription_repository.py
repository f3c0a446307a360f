from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.db.models.subscription import Subscription
from app.db.models.subscription_invoice import SubscriptionInvoice


def get(db: Session, subscription_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.id == subscription_id).first()


def get_by_square_id(db: Session, square_subscription_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(
        Subscription.square_subscription_id == square_subscription_id
    ).first()


def exists_by_square_id(db: Session, square_subscription_id: str) -> bool:
    return get_by_square_id(db, square_subscription_id) is not None


def list_by_customer_id(db: Session, square_customer_id: str) -> List[Subscription]:
    return db.query(Subscription).filter(
        Subscription.square_customer_id == square_customer_id
    ).order_by(Subscription.created_at.desc()).all()


def query_all(db: Session):
    return db.query(Subscription).order_by(Subscription.created_at.desc(), Subscription.id.desc())


def query_by_status(db: Session, status: str):
    return query_all(db).filter(Subscription.status == status)


def list_by_status(db: Session, status: str) -> List[Subscription]:
    return query_by_status(db, status).all()


def query_by_email(db: Session, email: str):
    return query_all(db).filter(Subscription.customer_email == email)


def query_search(db: Session, term: str):
    pattern = f"%{term.lower()}%"
    return query_all(db).filter(or_(
        func.lower(Subscription.customer_email).like(pattern),
        func.lower(Subscription.square_subscription_id).like(pattern),
        func.lower(Subscription.square_customer_id).like(pattern),
    ))


def count(db: Session, status: Optional[str] = None) -> int:
    query = db.query(Subscription)
    if status is not None:
        query = query.filter(Subscription.status == status)
    return query.count()


def get_invoice(db: Session, invoice_id: int) -> Optional[SubscriptionInvoice]:
    return db.query(SubscriptionInvoice).filter(SubscriptionInvoice.id == invoice_id).first()


def list_invoices(db: Session, subscription_id: int) -> List[SubscriptionInvoice]:
    return db.query(SubscriptionInvoice).filter(
        SubscriptionInvoice.subscription_id == subscription_id
    ).order_by(SubscriptionInvoice.created_at).all()
