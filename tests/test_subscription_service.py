"""
Unit tests for the subscription lifecycle.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.core.errors import ConflictError, DomainValidationError, InvalidStateTransition, SquareAPIError
from app.db.models.subscription import Subscription, SubscriptionStatus
from app.db.models.subscription_invoice import InvoiceStatus, SubscriptionInvoice
from app.services import square_invoice_service, subscription_service
from app.services.square_invoice_service import InvoiceResult


def _data(**overrides):
    data = {
        "square_subscription_id": "sq-sub-x",
        "square_customer_id": "sq-cust-x",
        "square_plan_id": "plan-x",
        "customer_email": "parent@example.com",
        "amount": Decimal("300.00"),
    }
    data.update(overrides)
    return data


def test_create_rejects_duplicate_square_id(db):
    subscription_service.create_subscription(db, _data())
    with pytest.raises(ConflictError):
        subscription_service.create_subscription(db, _data())


def test_record_payment_accumulates(db, gateway, make_subscription):
    sub = make_subscription(amount="300.00")

    updated = subscription_service.record_payment(db, gateway, sub.id, Decimal("100.00"))
    assert updated.amount_paid == Decimal("100.00")
    assert updated.status == SubscriptionStatus.ACTIVE.value
    assert gateway.calls == []


def test_full_payment_cancels_subscription(db, gateway, make_subscription):
    sub = make_subscription(amount="300.00", amount_paid="200.00")

    updated = subscription_service.record_payment(db, gateway, sub.id, Decimal("100.00"))
    assert updated.status == SubscriptionStatus.CANCELED.value
    assert updated.cancellation_reason == subscription_service.AUTO_COMPLETE_REASON
    assert updated.canceled_at is not None
    assert ("cancel", sub.square_subscription_id) in gateway.calls


def test_auto_cancel_survives_gateway_failure(db, gateway, make_subscription):
    gateway.fail_cancel = True
    sub = make_subscription(amount="100.00")

    updated = subscription_service.record_payment(db, gateway, sub.id, Decimal("100.00"))
    assert updated.status == SubscriptionStatus.CANCELED.value
    assert updated.amount_paid == Decimal("100.00")


def test_explicit_cancel_surfaces_gateway_failure(db, gateway, make_subscription):
    gateway.fail_cancel = True
    sub = make_subscription()

    with pytest.raises(SquareAPIError):
        subscription_service.cancel_subscription(db, gateway, sub.id, "customer request")

    db.refresh(sub)
    assert sub.status == SubscriptionStatus.ACTIVE.value


def test_cancel_twice_is_rejected(db, gateway, make_subscription):
    sub = make_subscription()
    subscription_service.cancel_subscription(db, gateway, sub.id, "customer request")

    with pytest.raises(InvalidStateTransition):
        subscription_service.cancel_subscription(db, gateway, sub.id, "again")


def test_pause_and_resume(db, gateway, make_subscription):
    sub = make_subscription()

    paused = subscription_service.pause_subscription(db, gateway, sub.id)
    assert paused.status == SubscriptionStatus.PAUSED.value
    with pytest.raises(InvalidStateTransition):
        subscription_service.pause_subscription(db, gateway, sub.id)

    resumed = subscription_service.resume_subscription(db, gateway, sub.id)
    assert resumed.status == SubscriptionStatus.ACTIVE.value
    assert [c[0] for c in gateway.calls] == ["pause", "resume"]


def test_check_and_complete_sweeps_paid_subscriptions(db, gateway, make_subscription):
    paid = make_subscription(amount="50.00", amount_paid="50.00")
    unpaid = make_subscription(amount="50.00", amount_paid="10.00")

    assert subscription_service.check_and_complete_subscriptions(db, gateway) == 1
    db.refresh(paid)
    db.refresh(unpaid)
    assert paid.status == SubscriptionStatus.CANCELED.value
    assert unpaid.status == SubscriptionStatus.ACTIVE.value


@pytest.mark.parametrize("remote,expected", [
    ("ACTIVE", "ACTIVE"),
    ("CANCELED", "CANCELED"),
    ("PAUSED", "PAUSED"),
    ("PENDING", "PENDING"),
    ("DEACTIVATED", "PENDING"),
    (None, "PENDING"),
])
def test_square_status_mapping(remote, expected):
    assert subscription_service.map_square_status(remote) == expected


def test_sync_status_from_square(db, gateway, make_subscription):
    sub = make_subscription()
    gateway.remote_status = "PAUSED"

    synced = subscription_service.sync_subscription_status_from_square(db, gateway, sub.id)
    assert synced.status == SubscriptionStatus.PAUSED.value


def test_sync_all_from_square_upserts(db, gateway, make_subscription):
    existing = make_subscription(amount="10.00")
    gateway.customers["cust-new"] = {
        "given_name": "Ada", "family_name": "Lovelace", "email_address": "ada@example.com"
    }
    gateway.remote_subscriptions = [
        {
            "id": existing.square_subscription_id,
            "customer_id": existing.square_customer_id,
            "plan_variation_id": "plan-1",
            "status": "CANCELED",
            "price_override_money": {"amount": 12000, "currency": "USD"},
        },
        {
            "id": "sq-remote-2",
            "customer_id": "cust-new",
            "status": "ACTIVE",
            "charged_through_date": "2027-01-31",
            "created_at": "2026-09-01T10:00:00Z",
        },
    ]

    result = subscription_service.sync_all_subscriptions_from_square(db, gateway)
    assert (result.created, result.updated, result.failures) == (1, 1, 0)
    assert result.error_message is None

    db.refresh(existing)
    assert existing.status == SubscriptionStatus.CANCELED.value
    assert existing.amount == Decimal("120.00")

    created = db.query(Subscription).filter(Subscription.square_subscription_id == "sq-remote-2").one()
    assert created.customer_name == "Ada Lovelace"
    assert created.customer_email == "ada@example.com"
    assert created.square_plan_id == subscription_service.UNKNOWN_PLAN
    assert created.amount == Decimal("0.00")
    assert created.estimated_end_date == date(2027, 1, 31)


def test_search_and_stats(db, gateway, make_subscription):
    make_subscription(email="alice@example.com")
    make_subscription(email="bob@example.com", status="CANCELED")

    page = subscription_service.search(db, "ALICE")
    assert page.total == 1

    stats = subscription_service.get_statistics(db)
    assert stats == {"total": 2, "active": 1, "canceled": 1}


def _invoice(db, subscription, amount="100.00", status="SENT"):
    invoice = SubscriptionInvoice(
        subscription_id=subscription.id,
        amount=Decimal(amount),
        currency="USD",
        square_invoice_id=f"inv-{subscription.id}",
        status=status,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def test_create_invoice_bills_outstanding_balance(db, gateway, make_subscription, monkeypatch):
    sub = make_subscription(amount="300.00", amount_paid="100.00")
    sent = {}

    def fake_invoice(client, student_id, email, total_due, installment, cadence):
        sent.update(student_id=student_id, email=email, total_due=total_due, cadence=cadence)
        return InvoiceResult(invoice_id="INV-1", public_url="https://sq.link/INV-1")

    monkeypatch.setattr(square_invoice_service, "create_installment_invoice", fake_invoice)

    invoice = subscription_service.create_invoice_for_subscription(db, gateway, sub.id, Decimal("50.00"), "WEEKLY")
    assert invoice.amount == Decimal("200.00")
    assert invoice.status == InvoiceStatus.SENT.value
    assert invoice.square_invoice_id == "INV-1"
    assert invoice.public_url == "https://sq.link/INV-1"
    assert sent == {"student_id": str(sub.id), "email": sub.customer_email, "total_due": Decimal("200.00"), "cadence": "WEEKLY"}
    assert [i.id for i in subscription_service.list_invoices(db, sub.id)] == [invoice.id]


def test_create_invoice_needs_outstanding_balance(db, gateway, make_subscription):
    sub = make_subscription(amount="100.00", amount_paid="100.00")
    with pytest.raises(DomainValidationError):
        subscription_service.create_invoice_for_subscription(db, gateway, sub.id, Decimal("25.00"))


def test_mark_invoice_paid_records_payment_and_completes(db, gateway, make_subscription):
    sub = make_subscription(amount="100.00")
    invoice = _invoice(db, sub, amount="100.00")

    paid = subscription_service.mark_invoice_paid(db, gateway, invoice.id)
    assert paid.status == InvoiceStatus.PAID.value
    assert paid.paid_at is not None

    db.refresh(sub)
    assert sub.amount_paid == Decimal("100.00")
    assert sub.status == SubscriptionStatus.CANCELED.value
    assert ("cancel", sub.square_subscription_id) in gateway.calls


def test_mark_invoice_paid_twice_is_a_no_op(db, gateway, make_subscription):
    sub = make_subscription(amount="300.00")
    invoice = _invoice(db, sub, amount="100.00")

    subscription_service.mark_invoice_paid(db, gateway, invoice.id)
    subscription_service.mark_invoice_paid(db, gateway, invoice.id)

    db.refresh(sub)
    assert sub.amount_paid == Decimal("100.00")


def test_mark_invoice_paid_leaves_invoice_unpaid_when_payment_fails(db, gateway, make_subscription):
    sub = make_subscription(amount="300.00")
    invoice = _invoice(db, sub)

    with pytest.raises(DomainValidationError):
        subscription_service.mark_invoice_paid(db, gateway, invoice.id, Decimal("-5.00"))

    db.refresh(invoice)
    db.refresh(sub)
    assert invoice.status == InvoiceStatus.SENT.value
    assert invoice.paid_at is None
    assert sub.amount_paid == Decimal("0.00")


def test_sync_all_statuses_counts_failures(db, gateway, make_subscription):
    ok = make_subscription()
    broken = make_subscription()
    gateway.remote_status = "PAUSED"
    gateway.fail_get_for.add(broken.square_subscription_id)

    result = subscription_service.sync_all_subscription_statuses(db, gateway)
    assert (result.synced, result.failed) == (1, 1)

    db.refresh(ok)
    db.refresh(broken)
    assert ok.status == SubscriptionStatus.PAUSED.value
    assert broken.status == SubscriptionStatus.ACTIVE.value


def test_create_square_customer(gateway):
    customer = subscription_service.create_square_customer(gateway, "new@example.com", given_name="Grace")
    assert customer["id"] == "CUST-NEW"
    assert customer["given_name"] == "Grace"
    assert ("create_customer", "new@example.com") in gateway.calls

    with pytest.raises(DomainValidationError):
        subscription_service.create_square_customer(gateway, "")


def test_status_filter_and_override(db, make_subscription):
    active = make_subscription()
    make_subscription(status="PAUSED")

    assert [s.id for s in subscription_service.list_by_status(db, "active")] == [active.id]

    updated = subscription_service.update_subscription_status(db, active.id, "CANCELED")
    assert updated.status == SubscriptionStatus.CANCELED.value
    assert updated.canceled_at is not None

    with pytest.raises(DomainValidationError):
        subscription_service.update_subscription_status(db, active.id, "BOGUS")
    with pytest.raises(DomainValidationError):
        subscription_service.list_by_status(db, "BOGUS")
