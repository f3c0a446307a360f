"""
Unit tests for payment plans and Square webhook application.
"""
import json
from decimal import Decimal

import pytest

from app.core.errors import InvalidStateTransition
from app.db.models.payment_plan import PaymentPlan, PlanStatus
from app.services import payment_plan_service


@pytest.fixture
def plan(db):
    return payment_plan_service.create_plan(
        db, student_id="S-1", total_due=Decimal("100.00"), installment_amount=Decimal("25.00")
    )


def test_create_plan_starts_active_with_full_balance(plan):
    assert plan.status == PlanStatus.ACTIVE.value
    assert plan.remaining == Decimal("100.00")
    assert plan.cadence == "MONTHLY"


def test_four_installments_complete_the_plan(db, plan):
    for _ in range(3):
        assert payment_plan_service.apply_payment_by_student_id(db, "S-1", Decimal("25.00"), "pay")

    db.refresh(plan)
    assert plan.remaining == Decimal("25.00")
    assert plan.status == PlanStatus.ACTIVE.value

    assert payment_plan_service.apply_payment_by_student_id(db, "S-1", Decimal("25.00"), "pay-4")
    db.refresh(plan)
    assert plan.remaining == Decimal("0.00")
    assert plan.status == PlanStatus.COMPLETE.value


def test_overpayment_clamps_remaining_to_zero(db, plan):
    assert payment_plan_service.apply_payment_by_student_id(db, "S-1", Decimal("130.00"))
    db.refresh(plan)
    assert plan.remaining == Decimal("0.00")
    assert plan.status == PlanStatus.COMPLETE.value


def test_no_active_plan_returns_false_without_changes(db, plan):
    payment_plan_service.cancel_plan(db, plan.id, "dropped")

    assert payment_plan_service.apply_payment_by_student_id(db, "S-1", Decimal("25.00")) is False
    db.refresh(plan)
    assert plan.remaining == Decimal("100.00")
    assert plan.status == PlanStatus.CANCELED.value


@pytest.mark.parametrize("student_id,amount", [
    ("", Decimal("10.00")),
    ("   ", Decimal("10.00")),
    (None, Decimal("10.00")),
    ("S-1", Decimal("0")),
    ("S-1", Decimal("-5")),
    ("S-1", None),
])
def test_unusable_input_is_not_applied(db, plan, student_id, amount):
    assert payment_plan_service.apply_payment_by_student_id(db, student_id, amount) is False
    db.refresh(plan)
    assert plan.remaining == Decimal("100.00")


def test_first_active_plan_wins(db, plan, caplog):
    second = payment_plan_service.create_plan(
        db, student_id="S-1", total_due=Decimal("50.00"), installment_amount=Decimal("10.00")
    )

    assert payment_plan_service.apply_payment_by_student_id(db, "S-1", Decimal("10.00"))
    db.refresh(plan)
    db.refresh(second)
    assert plan.remaining == Decimal("90.00")
    assert second.remaining == Decimal("50.00")
    assert "2 active payment plans" in caplog.text


def test_complete_plan_is_idempotent(db, plan):
    assert payment_plan_service.complete_plan(db, plan.id) is True
    db.refresh(plan)
    assert plan.status == PlanStatus.COMPLETE.value
    assert plan.remaining == Decimal("0.00")

    assert payment_plan_service.complete_plan(db, plan.id) is True
    assert payment_plan_service.complete_plan(db, 12345) is False


def test_cancel_completed_plan_is_rejected(db, plan):
    payment_plan_service.complete_plan(db, plan.id)
    with pytest.raises(InvalidStateTransition):
        payment_plan_service.cancel_plan(db, plan.id)


def test_list_plans_filters_and_clamps_size(db, plan):
    payment_plan_service.create_plan(db, student_id="S-2", total_due=Decimal("10"), installment_amount=Decimal("5"))

    page = payment_plan_service.list_plans(db, student_id="S-2", size=1000)
    assert page.total == 1
    assert page.size == 200
    assert page.items[0].student_id == "S-2"

    active = payment_plan_service.list_plans(db, status="active")
    assert active.total == 2


def _payment_event(**payment):
    return json.dumps({"type": "payment.updated", "data": {"object": {"payment": payment}}})


def test_webhook_applies_by_invoice_id_first(db, plan):
    plan.invoice_id = "inv-1"
    other = payment_plan_service.create_plan(
        db, student_id="S-9", total_due=Decimal("80.00"), installment_amount=Decimal("20.00")
    )
    db.commit()

    payload = _payment_event(
        invoice_id="inv-1", reference_id="S-9", total_money={"amount": 2500, "currency": "USD"}
    )
    payment_plan_service.handle_square_webhook(db, payload, "payment.updated")

    db.refresh(plan)
    db.refresh(other)
    assert plan.remaining == Decimal("75.00")
    assert other.remaining == Decimal("80.00")


def test_webhook_falls_back_to_student_reference(db, plan):
    payload = _payment_event(reference_id="S-1", amount_money={"amount": 1050, "currency": "USD"})
    payment_plan_service.handle_square_webhook(db, payload, "payment.created")

    db.refresh(plan)
    assert plan.remaining == Decimal("89.50")


def test_webhook_reads_student_id_from_note(db, plan):
    payload = _payment_event(note="Tuition studentId=S-1, spring", amount_money={"amount": 5000})
    payment_plan_service.handle_square_webhook(db, payload, "payment.created")

    db.refresh(plan)
    assert plan.remaining == Decimal("50.00")


def test_webhook_invoice_event_sums_invoice_payments(db, plan):
    plan.invoice_id = "inv-7"
    db.commit()
    payload = json.dumps({
        "type": "invoice.payment_made",
        "data": {"object": {"invoice": {
            "id": "inv-7",
            "payment_requests": [{"request_type": "INSTALLMENT"}],
            "payments": [{"total_money": {"amount": 2500}}, {"total_money": {"amount": 2500}}],
        }}},
    })
    payment_plan_service.handle_square_webhook(db, payload, "invoice.payment_made")

    db.refresh(plan)
    assert plan.remaining == Decimal("50.00")


def test_webhook_never_raises(db, plan):
    payment_plan_service.handle_square_webhook(db, "{not json", "payment.created")
    payment_plan_service.handle_square_webhook(db, json.dumps({"data": {}}), None)

    db.refresh(plan)
    assert plan.remaining == Decimal("100.00")
    assert db.query(PaymentPlan).count() == 1
