"""
Installment invoices for payment plans.

Builds a customer, an order and an invoice whose payment requests split the
total into installments, then publishes it so Square emails the customer.
Merchants without installment support get a single balance request instead.
"""
import logging
import math
import time
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from app.core.errors import DomainValidationError, SquareAPIError
from app.services.square_client import SquareClient
from app.services.square_payment_service import to_minor_units

logger = logging.getLogger(__name__)

MAX_INSTALLMENTS = 24
INSTALLMENTS_UNSUPPORTED = "MERCHANT_SUBSCRIPTION_NOT_FOUND"


@dataclass
class InvoiceResult:
    invoice_id: str
    public_url: Optional[str] = None


CADENCE_STEPS = {
    "WEEKLY": relativedelta(weeks=1),
    "BIWEEKLY": relativedelta(weeks=2),
    "MONTHLY": relativedelta(months=1),
}


def next_due_date(day: date, cadence: str) -> date:
    step = CADENCE_STEPS.get((cadence or "MONTHLY").upper(), CADENCE_STEPS["MONTHLY"])
    return day + step


def build_installment_schedule(
    total_due: Decimal,
    installment: Decimal,
    cadence: str,
    start: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Split ``total_due`` into INSTALLMENT payment requests.

    The number of steps is ceil(total / installment), kept within 1..24.
    Every step asks for ``installment`` except the last, which takes the
    remainder so the amounts always add up to the total. The first request
    is due one cadence after ``start`` (today by default).
    """
    total_cents = to_minor_units(total_due)
    installment_cents = to_minor_units(installment)
    if total_cents <= 0 or installment_cents <= 0:
        raise DomainValidationError("total_due and installment_amount must be greater than zero")

    steps = max(1, min(MAX_INSTALLMENTS, math.ceil(total_cents / installment_cents)))

    due = start or date.today()
    requests = []
    remaining = total_cents
    for step in range(steps):
        due = next_due_date(due, cadence)
        amount = remaining if step == steps - 1 else min(installment_cents, remaining)
        remaining -= amount
        requests.append({
            "request_type": "INSTALLMENT",
            "due_date": due.isoformat(),
            "fixed_amount_requested_money": {"amount": amount, "currency": "USD"},
            "tipping_enabled": False,
            "automatic_payment_source": "NONE",
        })
    return requests


def _find_or_create_customer(client: SquareClient, student_id: str, email: str) -> str:
    customer = client.search_customer_by_email(email)
    if customer and customer.get("id"):
        return customer["id"]

    created = client.create_customer({
        "email_address": email,
        "reference_id": f"student-{student_id}",
        "note": f"Payment plan customer for student {student_id}",
    })
    if not created.get("id"):
        raise SquareAPIError("Square did not return a customer id", status_code=502)
    return created["id"]


def _create_order(client: SquareClient, location_id: str, customer_id: str, student_id: str, total_cents: int) -> str:
    body = client.request("POST", "/v2/orders", json={
        "idempotency_key": str(uuid.uuid4()),
        "order": {
            "location_id": location_id,
            "customer_id": customer_id,
            "reference_id": f"plan-{student_id}",
            "line_items": [{
                "name": f"Payment Plan - Student {student_id}",
                "quantity": "1",
                "base_price_money": {"amount": total_cents, "currency": "USD"},
            }],
        },
    })
    order = body.get("order") or {}
    if not order.get("id"):
        raise SquareAPIError("Square did not return an order id", status_code=502)
    return order["id"]


def _invoice_body(location_id, order_id, customer_id, student_id, payment_requests) -> Dict[str, Any]:
    return {
        "idempotency_key": str(uuid.uuid4()),
        "invoice": {
            "location_id": location_id,
            "order_id": order_id,
            "primary_recipient": {"customer_id": customer_id},
            "payment_requests": payment_requests,
            "delivery_method": "EMAIL",
            "accepted_payment_methods": {
                "card": True,
                "square_gift_card": False,
                "bank_account": False,
                "buy_now_pay_later": False,
                "cash_app_pay": False,
            },
            "invoice_number": f"PLAN-{student_id}-{int(time.time() * 1000)}",
            "title": f"Payment Plan - Student {student_id}",
        },
    }


def create_installment_invoice(
    client: SquareClient,
    student_id: str,
    email: str,
    total_due: Decimal,
    installment: Decimal,
    cadence: str,
) -> InvoiceResult:
    """
    Create and publish a Square invoice for a payment plan.

    Returns:
        InvoiceResult with the Square invoice id and its public payment URL
    """
    if not email:
        raise DomainValidationError("email is required to send an invoice")
    location_id = client.require_location()

    schedule = build_installment_schedule(total_due, installment, cadence)
    total_cents = to_minor_units(total_due)

    customer_id = _find_or_create_customer(client, student_id, email)
    order_id = _create_order(client, location_id, customer_id, student_id, total_cents)

    try:
        created = client.request(
            "POST", "/v2/invoices",
            json=_invoice_body(location_id, order_id, customer_id, student_id, schedule),
        )
    except SquareAPIError as e:
        if e.status_code != 403 or e.code != INSTALLMENTS_UNSUPPORTED:
            raise
        logger.warning(f"Installments not available for merchant, falling back to a single balance request (student {student_id})")
        balance = [{"request_type": "BALANCE", "due_date": schedule[-1]["due_date"]}]
        created = client.request(
            "POST", "/v2/invoices",
            json=_invoice_body(location_id, order_id, customer_id, student_id, balance),
        )

    invoice = created.get("invoice") or {}
    invoice_id = invoice.get("id")
    if not invoice_id:
        raise SquareAPIError("Square did not return an invoice id", status_code=502)

    published = client.request("POST", f"/v2/invoices/{invoice_id}/publish", json={
        "version": invoice.get("version", 0),
        "idempotency_key": str(uuid.uuid4()),
    })
    published_invoice = published.get("invoice") or invoice

    logger.info(f"Published Square invoice {invoice_id} for student {student_id}")
    return InvoiceResult(invoice_id=invoice_id, public_url=published_invoice.get("public_url"))
