"""
Unit tests for the refund workflow.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.core.errors import DomainValidationError, InvalidStateTransition, NotFoundError
from app.db.models.refund import SubscriptionRefund, RefundStatus
from app.services import refund_service


def test_processing_fee_rounds_half_up():
    assert refund_service.calculate_processing_fee(Decimal("50.00"), Decimal("2.5")) == Decimal("1.25")
    assert refund_service.calculate_processing_fee(Decimal("10.10"), Decimal("2.5")) == Decimal("0.25")
    assert refund_service.calculate_processing_fee(Decimal("0.20"), Decimal("2.5")) == Decimal("0.01")


def test_request_then_approve_with_default_fee(db, make_subscription):
    sub = make_subscription(amount="200.00")

    refund = refund_service.request_refund(db, sub.id, Decimal("50.00"), "Course canceled", requested_by_user_id=7)
    assert refund.status == RefundStatus.REQUESTED.value
    assert refund.requested_by_user_id == 7

    approved = refund_service.approve_refund(db, refund.id, approver_id=9)
    assert approved.status == RefundStatus.APPROVED.value
    assert approved.processing_fee == Decimal("1.25")
    assert approved.approved_amount == Decimal("48.75")
    assert approved.approved_amount + approved.processing_fee == approved.requested_amount
    assert approved.approved_by_user_id == 9
    assert approved.approved_at is not None


def test_request_above_subscription_amount_is_rejected(db, make_subscription):
    sub = make_subscription(amount="200.00")

    with pytest.raises(DomainValidationError):
        refund_service.request_refund(db, sub.id, Decimal("250.00"), "too much")

    assert db.query(SubscriptionRefund).count() == 0


def test_request_non_positive_amount_is_rejected(db, make_subscription):
    sub = make_subscription()
    with pytest.raises(DomainValidationError):
        refund_service.request_refund(db, sub.id, Decimal("0"), None)


def test_request_for_unknown_subscription(db):
    with pytest.raises(NotFoundError):
        refund_service.request_refund(db, 999, Decimal("10.00"), None)


def test_approve_twice_fails_and_names_states(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("20.00"), None)
    refund_service.approve_refund(db, refund.id)

    with pytest.raises(InvalidStateTransition) as exc:
        refund_service.approve_refund(db, refund.id)
    assert "APPROVED" in str(exc.value)
    assert "REQUESTED" in str(exc.value)


def test_reject_after_approval_fails(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("20.00"), None)
    refund_service.approve_refund(db, refund.id)

    with pytest.raises(InvalidStateTransition):
        refund_service.reject_refund(db, refund.id, "no")


def test_reject_records_reason_and_rejector(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("20.00"), None)

    rejected = refund_service.reject_refund(db, refund.id, "Outside refund window", rejector_id=3)
    assert rejected.status == RefundStatus.REJECTED.value
    assert rejected.rejection_reason == "Outside refund window"
    assert rejected.approved_by_user_id == 3


def test_processing_requires_approval(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("20.00"), None)

    with pytest.raises(InvalidStateTransition):
        refund_service.mark_as_processing(db, refund.id)

    refund_service.approve_refund(db, refund.id)
    processing = refund_service.mark_as_processing(db, refund.id)
    assert processing.status == RefundStatus.PROCESSING.value


def test_complete_from_processing_and_totals(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("50.00"), None)
    refund_service.approve_refund(db, refund.id)
    refund_service.mark_as_processing(db, refund.id)

    done = refund_service.complete_refund(db, refund.id, "sq-refund-1", Decimal("48.75"))
    assert done.status == RefundStatus.COMPLETED.value
    assert done.square_refund_id == "sq-refund-1"
    assert done.completed_at is not None

    assert refund_service.total_refunded(db, sub.id) == Decimal("48.75")
    assert refund_service.total_fees_deducted(db, sub.id) == Decimal("1.25")


def test_complete_requires_processing_or_approved(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("50.00"), None)

    with pytest.raises(InvalidStateTransition):
        refund_service.complete_refund(db, refund.id, "sq-refund-1")


def test_fail_refund_sets_error_note(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("50.00"), None)
    refund_service.approve_refund(db, refund.id)

    failed = refund_service.fail_refund(db, refund.id, "card expired")
    assert failed.status == RefundStatus.FAILED.value
    assert failed.notes == "Error: card expired"

    with pytest.raises(InvalidStateTransition):
        refund_service.fail_refund(db, refund.id, "again")


def test_pending_queues(db, make_subscription):
    sub = make_subscription(amount="500.00")
    first = refund_service.request_refund(db, sub.id, Decimal("10.00"), None)
    second = refund_service.request_refund(db, sub.id, Decimal("20.00"), None)
    refund_service.approve_refund(db, first.id)

    pending = refund_service.list_pending_approvals(db)
    assert [r.id for r in pending] == [second.id]
    assert refund_service.count_pending_approvals(db) == 1

    awaiting_square = refund_service.list_pending_square_processing(db)
    assert [r.id for r in awaiting_square] == [first.id]


def test_date_range_query(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("10.00"), None)
    now = datetime.utcnow()

    found = refund_service.list_created_between(db, now - timedelta(hours=1), now + timedelta(hours=1))
    assert [r.id for r in found] == [refund.id]
    assert refund_service.list_created_between(db, now + timedelta(hours=1), now + timedelta(hours=2)) == []


def test_net_refund_amount(db, make_subscription):
    sub = make_subscription()
    refund = refund_service.request_refund(db, sub.id, Decimal("100.00"), None)
    assert refund.net_refund_amount == Decimal("0.00")

    approved = refund_service.approve_refund(db, refund.id, fee_percent=Decimal("10"))
    assert approved.approved_amount == Decimal("90.00")
    assert approved.net_refund_amount == Decimal("80.00")
