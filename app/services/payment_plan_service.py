"""
Installment payment plans for students.

Payments reach a plan either directly (``apply_payment_by_student_id``, used
after a /charge) or through Square webhooks, which are matched by invoice id
first and by the student reference second.
"""
import json
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.errors import DomainValidationError, NotFoundError
from app.core.state_machine import ensure_transition, parse_status
from app.db.models.payment_plan import PaymentPlan, PlanStatus, PlanCadence
from app.repositories import plan_repository
from app.repositories.pagination import Page, paginate
from app.services import square_invoice_service
from app.services.square_client import SquareClient

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
STUDENT_ID_IN_NOTE = re.compile(r"studentId=([^,\s]+)")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _apply(plan: PaymentPlan, amount: Decimal) -> None:
    """Subtract a payment; a paid-off plan is COMPLETE with remaining clamped to zero."""
    ensure_transition("payment plan", plan.status, "apply_payment")
    remaining = _money(plan.remaining) - _money(amount)
    if remaining <= 0:
        plan.remaining = ZERO
        plan.status = PlanStatus.COMPLETE.value
    else:
        plan.remaining = remaining


def get_plan(db: Session, plan_id: int) -> PaymentPlan:
    plan = plan_repository.get(db, plan_id)
    if not plan:
        raise NotFoundError("Payment plan", plan_id)
    return plan


def list_plans(
    db: Session,
    student_id: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 0,
    size: int = 25,
) -> Page:
    """Plans newest first, optionally filtered by student and status."""
    if status:
        status = parse_status(PlanStatus, status)
    return paginate(plan_repository.query_filtered(db, student_id, status), page, size)


def create_plan(
    db: Session,
    student_id: str,
    total_due: Decimal,
    installment_amount: Decimal,
    cadence: str = PlanCadence.MONTHLY.value,
    email: Optional[str] = None,
    invoice_id: Optional[str] = None,
    gateway: Optional[SquareClient] = None,
    send_invoice: bool = False,
) -> PaymentPlan:
    """
    Create an ACTIVE plan whose remaining balance starts at ``total_due``.

    Args:
        db: Database session
        student_id: Student reference shared with the charge flow
        total_due: Full amount owed
        installment_amount: Amount expected per installment
        cadence: WEEKLY, BIWEEKLY or MONTHLY
        email: Customer email, required when sending an invoice
        invoice_id: Existing Square invoice to track, if any
        gateway: Square client, required when sending an invoice
        send_invoice: Create and publish a Square installment invoice

    Returns:
        The persisted plan
    """
    if not student_id or not student_id.strip():
        raise DomainValidationError("studentId is required")
    if total_due is None or _money(total_due) <= 0:
        raise DomainValidationError("totalDue must be greater than zero")
    if installment_amount is None or _money(installment_amount) <= 0:
        raise DomainValidationError("installmentAmount must be greater than zero")
    cadence = PlanCadence((cadence or "MONTHLY").upper()).value

    plan = PaymentPlan(
        student_id=student_id.strip(),
        email=email,
        cadence=cadence,
        total_due=_money(total_due),
        installment_amount=_money(installment_amount),
        remaining=_money(total_due),
        status=PlanStatus.ACTIVE.value,
        invoice_id=invoice_id,
    )

    if send_invoice and not invoice_id:
        if gateway is None:
            raise DomainValidationError("Square is required to send a plan invoice")
        result = square_invoice_service.create_installment_invoice(
            gateway, plan.student_id, email, plan.total_due, plan.installment_amount, cadence
        )
        plan.invoice_id = result.invoice_id
        plan.invoice_url = result.public_url

    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info(f"Created payment plan {plan.id} for student {plan.student_id}: total={plan.total_due}")
    return plan


def find_active_plan(db: Session, student_id: str) -> Optional[PaymentPlan]:
    plans = plan_repository.list_active_for_student(db, student_id)
    return plans[0] if plans else None


def apply_payment_by_student_id(db: Session, student_id: Optional[str], amount: Optional[Decimal], payment_ref: Optional[str] = None) -> bool:
    """
    Apply a payment to the student's oldest ACTIVE plan.

    Returns:
        True if a plan was updated; False when the input is unusable or the
        student has no ACTIVE plan (nothing is changed in that case)
    """
    if not student_id or not student_id.strip():
        logger.warning("Cannot apply payment: studentId is blank")
        return False
    if amount is None or Decimal(amount) <= 0:
        logger.warning(f"Cannot apply payment: non-positive amount for student {student_id}")
        return False

    active_plans = plan_repository.list_active_for_student(db, student_id)
    if not active_plans:
        logger.info(f"No active payment plan for student {student_id}; payment {payment_ref} not applied")
        return False

    plan = active_plans[0]
    previous = plan.remaining
    _apply(plan, amount)
    db.commit()

    logger.info(
        f"Payment {payment_ref} applied to plan {plan.id} for student {student_id}: "
        f"{amount} paid, balance {previous} -> {plan.remaining} ({plan.status})"
    )
    if len(active_plans) > 1:
        logger.warning(
            f"Student {student_id} has {len(active_plans)} active payment plans; "
            f"payment applied to plan {plan.id} only"
        )
    return True


def apply_payment_by_invoice_id(db: Session, invoice_id: str, amount: Decimal) -> bool:
    """Apply a payment to the plan tracking ``invoice_id``. Non-ACTIVE plans are left alone."""
    plan = plan_repository.get_by_invoice_id(db, invoice_id)
    if plan is None or plan.status != PlanStatus.ACTIVE.value:
        return False
    _apply(plan, amount)
    db.commit()
    logger.info(
        f"Payment applied to plan {plan.id} invoice {invoice_id}: paid={amount}, "
        f"remaining={plan.remaining}, status={plan.status}"
    )
    return True


def complete_plan(db: Session, plan_id: int) -> bool:
    """Mark a plan COMPLETE by hand. Already complete plans are left as they are."""
    plan = plan_repository.get(db, plan_id)
    if plan is None:
        logger.warning(f"Cannot complete plan {plan_id}: not found")
        return False
    if plan.status == PlanStatus.COMPLETE.value:
        return True

    plan.status = ensure_transition("payment plan", plan.status, "complete")
    plan.remaining = ZERO
    db.commit()
    logger.info(f"Plan {plan_id} manually completed for student {plan.student_id}")
    return True


def cancel_plan(db: Session, plan_id: int, reason: Optional[str] = None) -> bool:
    plan = plan_repository.get(db, plan_id)
    if plan is None:
        logger.warning(f"Cannot cancel plan {plan_id}: not found")
        return False

    plan.status = ensure_transition("payment plan", plan.status, "cancel")
    db.commit()
    logger.info(f"Plan {plan_id} canceled for student {plan.student_id}. Reason: {reason or 'none'}")
    return True


# ✅ Square webhook parsing

def _payment_node(event: Dict[str, Any]) -> Dict[str, Any]:
    obj = (event.get("data") or {}).get("object") or {}
    payment = obj.get("payment")
    return payment if isinstance(payment, dict) else obj


def extract_invoice_id(event: Dict[str, Any]) -> Optional[str]:
    obj = (event.get("data") or {}).get("object") or {}
    payment = obj.get("payment") or {}
    if payment.get("invoice_id"):
        return payment["invoice_id"]
    if obj.get("invoice_id"):
        return obj["invoice_id"]
    invoice = obj.get("invoice") or {}
    return invoice.get("id")


def extract_paid_cents(event: Dict[str, Any]) -> Optional[int]:
    payment = _payment_node(event)
    for key in ("total_money", "amount_money"):
        money = payment.get(key)
        if isinstance(money, dict) and money.get("amount") is not None:
            return int(money["amount"])

    invoice = ((event.get("data") or {}).get("object") or {}).get("invoice") or {}
    if invoice.get("payment_requests") and invoice.get("payments"):
        total = sum(
            int((p.get("total_money") or {}).get("amount") or 0)
            for p in invoice["payments"]
        )
        return total or None
    return None


def extract_student_id(event: Dict[str, Any]) -> Optional[str]:
    payment = _payment_node(event)
    reference = payment.get("reference_id")
    if reference and str(reference).strip():
        return str(reference).strip()
    match = STUDENT_ID_IN_NOTE.search(payment.get("note") or "")
    return match.group(1) if match else None


def handle_square_webhook(db: Session, payload: str, event_type: Optional[str]) -> None:
    """
    Apply the payment carried by a Square event to the matching plan.

    The invoice id wins over the student reference. Events that identify
    neither are ignored. Errors are logged and never raised to the caller.
    """
    try:
        event = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
        invoice_id = extract_invoice_id(event)
        cents = extract_paid_cents(event)
        student_id = extract_student_id(event)

        if cents is None:
            logger.debug(f"Webhook {event_type}: no paid amount found, ignoring")
            return
        paid = Decimal(cents).scaleb(-2)

        if invoice_id:
            if not apply_payment_by_invoice_id(db, invoice_id, paid):
                logger.debug(f"Webhook {event_type}: no active plan for invoice {invoice_id}")
            return

        if student_id:
            if not apply_payment_by_student_id(db, student_id, paid, f"webhook-{event_type}"):
                logger.debug(f"Webhook {event_type} for student {student_id}: no active plan for {paid}")
            return

        logger.debug(f"Webhook {event_type}: no invoice or student reference, ignoring")
    except Exception:
        db.rollback()
        logger.exception("Error handling payment plan webhook")
