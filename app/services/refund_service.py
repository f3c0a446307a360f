"""
Refund approval workflow.

A refund is requested against a subscription, approved (a processing fee is
withheld) or rejected by an operator, then processed through Square and
completed or failed. Every status change goes through the refund
transition table.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import DomainValidationError, NotFoundError
from app.core.state_machine import ensure_transition, parse_status
from app.db.models.refund import SubscriptionRefund, RefundStatus
from app.db.models.subscription import Subscription
from app.repositories import refund_repository, subscription_repository
from app.repositories.pagination import Page, paginate

logger = logging.getLogger(__name__)

DEFAULT_FEE_PERCENT = Decimal("2.5")
CENTS = Decimal("0.01")


def calculate_processing_fee(amount: Decimal, fee_percent: Decimal) -> Decimal:
    """Fee withheld from a refund, rounded half-up to cents."""
    return (Decimal(amount) * Decimal(fee_percent) / Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)


def get_refund(db: Session, refund_id: int) -> SubscriptionRefund:
    refund = refund_repository.get(db, refund_id)
    if not refund:
        raise NotFoundError("Refund", refund_id)
    return refund


def request_refund(
    db: Session,
    subscription_id: int,
    requested_amount: Decimal,
    reason: Optional[str],
    requested_by_user_id: Optional[int] = None,
) -> SubscriptionRefund:
    """
    Open a refund request.

    Raises:
        NotFoundError: Unknown subscription
        DomainValidationError: Amount not positive or above the subscription amount
    """
    subscription: Optional[Subscription] = subscription_repository.get(db, subscription_id)
    if not subscription:
        raise NotFoundError("Subscription", subscription_id)

    if requested_amount is None or Decimal(requested_amount) <= 0:
        raise DomainValidationError("Refund amount must be greater than zero")
    requested = Decimal(requested_amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    if requested > Decimal(subscription.amount):
        raise DomainValidationError(
            f"Refund amount {requested} exceeds subscription amount {subscription.amount}"
        )

    refund = SubscriptionRefund(
        subscription_id=subscription.id,
        requested_amount=requested,
        processing_fee=Decimal("0.00"),
        status=RefundStatus.REQUESTED.value,
        refund_reason=reason,
        requested_by_user_id=requested_by_user_id,
    )
    db.add(refund)
    db.commit()
    db.refresh(refund)
    logger.info(f"Refund {refund.id} requested: {requested} on subscription {subscription_id}")
    return refund


def approve_refund(
    db: Session,
    refund_id: int,
    fee_percent: Optional[Decimal] = None,
    notes: Optional[str] = None,
    approver_id: Optional[int] = None,
) -> SubscriptionRefund:
    """
    Approve a refund, withholding ``fee_percent`` (default 2.5) of the request.

    Returns:
        The refund in APPROVED with processing_fee and approved_amount set
    """
    refund = get_refund(db, refund_id)
    next_status = ensure_transition("refund", refund.status, "approve")

    percent = DEFAULT_FEE_PERCENT if fee_percent is None else Decimal(fee_percent)
    if percent < 0 or percent > 100:
        raise DomainValidationError("Processing fee percent must be between 0 and 100")

    fee = calculate_processing_fee(refund.requested_amount, percent)
    refund.processing_fee = fee
    refund.approved_amount = Decimal(refund.requested_amount) - fee
    refund.status = next_status
    refund.approved_by_user_id = approver_id
    refund.approved_at = datetime.utcnow()
    if notes:
        refund.notes = notes

    db.commit()
    db.refresh(refund)
    logger.info(f"Refund {refund_id} approved: fee={fee} approved={refund.approved_amount}")
    return refund


def reject_refund(db: Session, refund_id: int, reason: Optional[str], rejector_id: Optional[int] = None) -> SubscriptionRefund:
    refund = get_refund(db, refund_id)
    refund.status = ensure_transition("refund", refund.status, "reject")
    refund.rejection_reason = reason
    refund.approved_by_user_id = rejector_id
    db.commit()
    db.refresh(refund)
    logger.info(f"Refund {refund_id} rejected: {reason}")
    return refund


def mark_as_processing(db: Session, refund_id: int) -> SubscriptionRefund:
    refund = get_refund(db, refund_id)
    refund.status = ensure_transition("refund", refund.status, "mark_processing")
    db.commit()
    db.refresh(refund)
    return refund


def complete_refund(
    db: Session,
    refund_id: int,
    square_refund_id: Optional[str],
    refunded_amount: Optional[Decimal] = None,
) -> SubscriptionRefund:
    refund = get_refund(db, refund_id)
    refund.status = ensure_transition("refund", refund.status, "complete")
    refund.square_refund_id = square_refund_id
    refund.refunded_amount = refunded_amount if refunded_amount is not None else refund.approved_amount
    refund.completed_at = datetime.utcnow()
    db.commit()
    db.refresh(refund)
    logger.info(f"Refund {refund_id} completed (Square {square_refund_id})")
    return refund


def fail_refund(db: Session, refund_id: int, reason: str) -> SubscriptionRefund:
    refund = get_refund(db, refund_id)
    refund.status = ensure_transition("refund", refund.status, "fail")
    refund.notes = f"Error: {reason}"
    db.commit()
    db.refresh(refund)
    logger.warning(f"Refund {refund_id} failed: {reason}")
    return refund


def update_notes(db: Session, refund_id: int, notes: Optional[str]) -> SubscriptionRefund:
    refund = get_refund(db, refund_id)
    refund.notes = notes
    db.commit()
    db.refresh(refund)
    return refund


# ✅ Queries

def list_refunds(db: Session, page: int = 0, size: int = 25) -> Page:
    return paginate(refund_repository.query_all(db), page, size)


def list_by_status(db: Session, status: str, page: int = 0, size: int = 25) -> Page:
    return paginate(refund_repository.query_by_status(db, parse_status(RefundStatus, status)), page, size)


def list_for_subscription(db: Session, subscription_id: int) -> List[SubscriptionRefund]:
    return refund_repository.query_by_subscription(db, subscription_id).all()


def page_for_subscription(db: Session, subscription_id: int, page: int = 0, size: int = 25) -> Page:
    return paginate(refund_repository.query_by_subscription(db, subscription_id), page, size)


def list_pending_approvals(db: Session) -> List[SubscriptionRefund]:
    return refund_repository.list_pending_approvals(db)


def count_pending_approvals(db: Session) -> int:
    return refund_repository.count_by_statuses(
        db, [RefundStatus.REQUESTED.value, RefundStatus.PENDING_APPROVAL.value]
    )


def list_pending_square_processing(db: Session) -> List[SubscriptionRefund]:
    """Approved refunds that have not been sent to Square yet, oldest approval first."""
    return refund_repository.list_approved_without_square_refund(db)


def list_created_between(db: Session, start: datetime, end: datetime) -> List[SubscriptionRefund]:
    if start > end:
        raise DomainValidationError("start must not be after end")
    return refund_repository.list_created_between(db, start, end)


def total_refunded(db: Session, subscription_id: Optional[int] = None) -> Decimal:
    """Sum of refunded amounts of COMPLETED refunds, optionally for one subscription."""
    return refund_repository.sum_column(
        db, SubscriptionRefund.refunded_amount, [RefundStatus.COMPLETED.value], subscription_id
    )


def total_fees_deducted(db: Session, subscription_id: Optional[int] = None) -> Decimal:
    return refund_repository.sum_column(
        db, SubscriptionRefund.processing_fee,
        [RefundStatus.COMPLETED.value, RefundStatus.APPROVED.value],
        subscription_id,
    )


def get_statistics(db: Session) -> Dict[str, object]:
    return {
        "pending_approvals": count_pending_approvals(db),
        "completed": refund_repository.count_by_statuses(db, [RefundStatus.COMPLETED.value]),
        "total_refunded": total_refunded(db),
        "total_fees": total_fees_deducted(db),
    }
