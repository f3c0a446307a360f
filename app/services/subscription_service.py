"""
Subscription lifecycle: local records mirrored from Square subscriptions.

Payments recorded against a subscription accumulate in ``amount_paid``; once
the full amount is covered the Square subscription is canceled and the local
record is closed.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import DomainValidationError, ConflictError, NotFoundError, SquareAPIError
from app.core.state_machine import ensure_transition, parse_status
from app.db.models.subscription import Subscription, SubscriptionStatus
from app.db.models.subscription_invoice import SubscriptionInvoice, InvoiceStatus
from app.repositories import subscription_repository
from app.repositories.pagination import Page, paginate
from app.services import square_invoice_service
from app.services.square_client import SquareClient
from app.services.square_payment_sync_service import parse_timestamp

logger = logging.getLogger(__name__)

AUTO_COMPLETE_REASON = "Payment plan completed - total amount paid"
UNKNOWN_PLAN = "UNKNOWN_PLAN"
UNKNOWN_EMAIL = "unknown@example.com"


@dataclass
class SubscriptionSyncResult:
    created: int = 0
    updated: int = 0
    failures: int = 0
    error_message: Optional[str] = None


@dataclass
class StatusSyncResult:
    synced: int = 0
    failed: int = 0


def map_square_status(square_status: Optional[str]) -> str:
    """Map a Square subscription status onto ours; unknown values become PENDING."""
    value = (square_status or "").upper()
    if value in ("ACTIVE", "CANCELED", "PAUSED", "PENDING"):
        return value
    logger.warning(f"Unknown Square subscription status '{square_status}', treating as PENDING")
    return SubscriptionStatus.PENDING.value


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def get_subscription(db: Session, subscription_id: int) -> Subscription:
    subscription = subscription_repository.get(db, subscription_id)
    if not subscription:
        raise NotFoundError("Subscription", subscription_id)
    return subscription


def get_by_square_id(db: Session, square_subscription_id: str) -> Subscription:
    subscription = subscription_repository.get_by_square_id(db, square_subscription_id)
    if not subscription:
        raise NotFoundError("Subscription", square_subscription_id)
    return subscription


def create_subscription(db: Session, data: Dict[str, Any]) -> Subscription:
    """
    Create a local subscription record.

    Args:
        db: Database session
        data: Field values; square_subscription_id, square_customer_id,
            square_plan_id, customer_email and amount are required

    Raises:
        ConflictError: A subscription with the same Square id already exists
    """
    square_id = data.get("square_subscription_id")
    if subscription_repository.exists_by_square_id(db, square_id):
        raise ConflictError(f"Subscription already exists with Square ID: {square_id}")
    if data.get("amount") is None or _money(data["amount"]) <= 0:
        raise DomainValidationError("amount must be greater than zero")

    subscription = Subscription(
        square_subscription_id=square_id,
        square_customer_id=data["square_customer_id"],
        square_plan_id=data["square_plan_id"],
        customer_email=data["customer_email"],
        customer_name=data.get("customer_name"),
        amount=_money(data["amount"]),
        amount_paid=Decimal("0.00"),
        status=data.get("status") or SubscriptionStatus.ACTIVE.value,
        currency=data.get("currency") or "USD",
        description=data.get("description"),
        billing_cycle=data.get("billing_cycle") or "MONTHLY",
        amount_per_payment=data.get("amount_per_payment"),
        frequency=data.get("frequency"),
        estimated_end_date=data.get("estimated_end_date"),
        number_of_payments=data.get("number_of_payments"),
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info(f"Created subscription {subscription.id} (Square {square_id})")
    return subscription


# ✅ Queries

def list_subscriptions(db: Session, page: int = 0, size: int = 25) -> Page:
    return paginate(subscription_repository.query_all(db), page, size)


def list_active(db: Session, page: int = 0, size: int = 25) -> Page:
    return paginate(subscription_repository.query_by_status(db, SubscriptionStatus.ACTIVE.value), page, size)


def list_by_status(db: Session, status: str) -> List[Subscription]:
    return subscription_repository.list_by_status(db, parse_status(SubscriptionStatus, status))


def list_by_customer_id(db: Session, square_customer_id: str) -> List[Subscription]:
    return subscription_repository.list_by_customer_id(db, square_customer_id)


def list_by_email(db: Session, email: str, page: int = 0, size: int = 25) -> Page:
    return paginate(subscription_repository.query_by_email(db, email), page, size)


def search(db: Session, term: str, page: int = 0, size: int = 25) -> Page:
    """Case-insensitive substring search over email, subscription id and customer id."""
    return paginate(subscription_repository.query_search(db, term.strip()), page, size)


def get_statistics(db: Session) -> Dict[str, int]:
    return {
        "total": subscription_repository.count(db),
        "active": subscription_repository.count(db, SubscriptionStatus.ACTIVE.value),
        "canceled": subscription_repository.count(db, SubscriptionStatus.CANCELED.value),
    }


# ✅ Updates

def update_subscription_status(db: Session, subscription_id: int, status: str) -> Subscription:
    subscription = get_subscription(db, subscription_id)
    subscription.status = parse_status(SubscriptionStatus, status)
    if subscription.status == SubscriptionStatus.CANCELED.value and subscription.canceled_at is None:
        subscription.canceled_at = datetime.utcnow()
    db.commit()
    db.refresh(subscription)
    return subscription


def update_subscription_amount(db: Session, subscription_id: int, amount: Decimal) -> Subscription:
    if amount is None or _money(amount) <= 0:
        raise DomainValidationError("amount must be greater than zero")
    subscription = get_subscription(db, subscription_id)
    subscription.amount = _money(amount)
    db.commit()
    db.refresh(subscription)
    logger.info(f"Subscription {subscription_id} amount set to {subscription.amount}")
    return subscription


def _is_fully_paid(subscription: Subscription) -> bool:
    return _money(subscription.amount) - _money(subscription.amount_paid or 0) <= 0


def _auto_complete(db: Session, gateway: SquareClient, subscription: Subscription) -> None:
    """Cancel a fully paid ACTIVE subscription; the Square call is best-effort."""
    ensure_transition("subscription", subscription.status, "auto_complete")

    if subscription.square_subscription_id:
        try:
            gateway.cancel_subscription(subscription.square_subscription_id)
        except Exception as e:
            logger.error(
                f"Square cancel failed for fully paid subscription {subscription.id} "
                f"({subscription.square_subscription_id}): {e}"
            )

    subscription.status = SubscriptionStatus.CANCELED.value
    subscription.cancellation_reason = AUTO_COMPLETE_REASON
    subscription.canceled_at = datetime.utcnow()
    logger.info(f"Subscription {subscription.id} fully paid, canceled")


def record_payment(db: Session, gateway: SquareClient, subscription_id: int, amount: Decimal) -> Subscription:
    """
    Add a payment to ``amount_paid`` and close the subscription once paid off.

    Args:
        db: Database session
        gateway: Square client used for the automatic cancel
        subscription_id: Local subscription id
        amount: Payment amount, must be positive

    Returns:
        The updated subscription
    """
    if amount is None or _money(amount) <= 0:
        raise DomainValidationError("payment amount must be greater than zero")

    subscription = get_subscription(db, subscription_id)
    subscription.amount_paid = _money(subscription.amount_paid or 0) + _money(amount)
    logger.info(
        f"Recorded payment {amount} on subscription {subscription_id} "
        f"({subscription.amount_paid}/{subscription.amount})"
    )

    if _is_fully_paid(subscription) and subscription.status == SubscriptionStatus.ACTIVE.value:
        _auto_complete(db, gateway, subscription)

    db.commit()
    db.refresh(subscription)
    return subscription


def check_and_complete_subscriptions(db: Session, gateway: SquareClient) -> int:
    """Close every ACTIVE subscription that is already fully paid. Returns the count."""
    completed = 0
    for subscription in subscription_repository.list_by_status(db, SubscriptionStatus.ACTIVE.value):
        if _is_fully_paid(subscription):
            _auto_complete(db, gateway, subscription)
            completed += 1
    db.commit()
    if completed:
        logger.info(f"Auto-completed {completed} fully paid subscriptions")
    return completed


# ✅ Invoices

def create_invoice_for_subscription(
    db: Session,
    gateway: SquareClient,
    subscription_id: int,
    installment_amount: Decimal,
    cadence: str = "MONTHLY",
) -> SubscriptionInvoice:
    """Send a Square installment invoice for the unpaid balance of a subscription."""
    subscription = get_subscription(db, subscription_id)
    balance = _money(subscription.amount) - _money(subscription.amount_paid or 0)
    if balance <= 0:
        raise DomainValidationError(f"Subscription {subscription_id} has no outstanding balance")

    result = square_invoice_service.create_installment_invoice(
        gateway,
        student_id=str(subscription.id),
        email=subscription.customer_email,
        total_due=balance,
        installment=installment_amount,
        cadence=cadence,
    )

    invoice = SubscriptionInvoice(
        subscription_id=subscription.id,
        amount=balance,
        currency=subscription.currency or "USD",
        square_invoice_id=result.invoice_id,
        public_url=result.public_url,
        status=InvoiceStatus.SENT.value,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def list_invoices(db: Session, subscription_id: int) -> List[SubscriptionInvoice]:
    get_subscription(db, subscription_id)
    return subscription_repository.list_invoices(db, subscription_id)


def mark_invoice_paid(db: Session, gateway: SquareClient, invoice_id: int, amount: Optional[Decimal] = None) -> SubscriptionInvoice:
    """Mark an invoice PAID and record the payment on its subscription. PAID invoices are left alone."""
    invoice = subscription_repository.get_invoice(db, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    if invoice.status == InvoiceStatus.PAID.value:
        return invoice

    invoice.status = InvoiceStatus.PAID.value
    invoice.paid_at = datetime.utcnow()
    try:
        # record_payment commits the invoice together with the payment
        record_payment(db, gateway, invoice.subscription_id, amount if amount is not None else invoice.amount)
    except Exception:
        db.rollback()
        raise
    db.refresh(invoice)
    return invoice


# ✅ Explicit lifecycle actions (Square first, local state only on success)

def pause_subscription(db: Session, gateway: SquareClient, subscription_id: int) -> Subscription:
    subscription = get_subscription(db, subscription_id)
    next_status = ensure_transition("subscription", subscription.status, "pause")
    gateway.pause_subscription(subscription.square_subscription_id)
    subscription.status = next_status
    db.commit()
    db.refresh(subscription)
    logger.info(f"Paused subscription {subscription_id}")
    return subscription


def resume_subscription(db: Session, gateway: SquareClient, subscription_id: int) -> Subscription:
    subscription = get_subscription(db, subscription_id)
    next_status = ensure_transition("subscription", subscription.status, "resume")
    gateway.resume_subscription(subscription.square_subscription_id)
    subscription.status = next_status
    db.commit()
    db.refresh(subscription)
    logger.info(f"Resumed subscription {subscription_id}")
    return subscription


def _cancel(db: Session, gateway: SquareClient, subscription: Subscription, reason: Optional[str]) -> Subscription:
    next_status = ensure_transition("subscription", subscription.status, "cancel")
    gateway.cancel_subscription(subscription.square_subscription_id)
    subscription.status = next_status
    subscription.cancellation_reason = reason
    subscription.canceled_at = datetime.utcnow()
    db.commit()
    db.refresh(subscription)
    logger.info(f"Canceled subscription {subscription.id}: {reason}")
    return subscription


def cancel_subscription(db: Session, gateway: SquareClient, subscription_id: int, reason: Optional[str] = None) -> Subscription:
    return _cancel(db, gateway, get_subscription(db, subscription_id), reason)


def cancel_subscription_by_square_id(db: Session, gateway: SquareClient, square_subscription_id: str, reason: Optional[str] = None) -> Subscription:
    return _cancel(db, gateway, get_by_square_id(db, square_subscription_id), reason)


# ✅ Square synchronisation

def sync_subscription_status_from_square(db: Session, gateway: SquareClient, subscription_id: int) -> Subscription:
    subscription = get_subscription(db, subscription_id)
    remote = gateway.get_subscription(subscription.square_subscription_id)
    new_status = map_square_status(remote.get("status"))
    if new_status != subscription.status:
        logger.info(f"Subscription {subscription_id} status {subscription.status} -> {new_status} (from Square)")
        subscription.status = new_status
        if new_status == SubscriptionStatus.CANCELED.value and subscription.canceled_at is None:
            subscription.canceled_at = datetime.utcnow()
    db.commit()
    db.refresh(subscription)
    return subscription


def sync_all_subscription_statuses(db: Session, gateway: SquareClient) -> StatusSyncResult:
    result = StatusSyncResult()
    for subscription in subscription_repository.query_all(db).all():
        try:
            sync_subscription_status_from_square(db, gateway, subscription.id)
            result.synced += 1
        except SquareAPIError as e:
            db.rollback()
            result.failed += 1
            logger.warning(f"Status sync failed for subscription {subscription.id}: {e}")
    return result


def _load_customer(gateway: SquareClient, customer_id: Optional[str]) -> Dict[str, Any]:
    if not customer_id:
        return {}
    try:
        return gateway.get_customer(customer_id)
    except SquareAPIError as e:
        logger.warning(f"Could not load Square customer {customer_id}: {e}")
        return {}


def customer_display_name(customer: Dict[str, Any]) -> Optional[str]:
    full_name = " ".join(p for p in (customer.get("given_name"), customer.get("family_name")) if p)
    return full_name or customer.get("nickname")


def _apply_remote(subscription: Subscription, remote: Dict[str, Any], gateway: SquareClient) -> None:
    subscription.square_customer_id = remote.get("customer_id") or subscription.square_customer_id or ""
    subscription.square_plan_id = remote.get("plan_variation_id") or remote.get("plan_id") or UNKNOWN_PLAN
    customer = _load_customer(gateway, remote.get("customer_id"))
    subscription.customer_email = customer.get("email_address") or subscription.customer_email or UNKNOWN_EMAIL
    name = customer_display_name(customer)
    if name:
        subscription.customer_name = name

    price = remote.get("price_override_money") or {}
    if price.get("amount") is not None:
        subscription.amount = (Decimal(price["amount"]) / 100).quantize(Decimal("0.01"))
    elif subscription.amount is None:
        subscription.amount = Decimal("0.00")

    subscription.status = map_square_status(remote.get("status"))

    charged_through = remote.get("charged_through_date")
    if charged_through:
        try:
            subscription.estimated_end_date = date.fromisoformat(charged_through)
        except ValueError:
            logger.warning(f"Bad charged_through_date '{charged_through}' on {remote.get('id')}")


def sync_all_subscriptions_from_square(db: Session, gateway: SquareClient) -> SubscriptionSyncResult:
    """
    Upsert every Square subscription of the location into the local table.

    A failure on one subscription is counted and the sync continues; a
    failure while listing stops the sync and is reported in error_message.
    """
    result = SubscriptionSyncResult()
    try:
        for remote in gateway.iter_subscriptions():
            square_id = remote.get("id")
            if not square_id:
                continue
            try:
                subscription = subscription_repository.get_by_square_id(db, square_id)
                if subscription is None:
                    subscription = Subscription(
                        square_subscription_id=square_id,
                        amount_paid=Decimal("0.00"),
                        currency="USD",
                        created_at=parse_timestamp(remote.get("created_at")) or datetime.utcnow(),
                    )
                    _apply_remote(subscription, remote, gateway)
                    db.add(subscription)
                    result.created += 1
                else:
                    _apply_remote(subscription, remote, gateway)
                    result.updated += 1
                db.commit()
            except Exception as e:
                db.rollback()
                result.failures += 1
                logger.error(f"Failed to sync Square subscription {square_id}: {e}")
    except SquareAPIError as e:
        result.error_message = e.message
        logger.error(f"Square subscription sync aborted: {e}")

    logger.info(
        f"Square subscription sync: created={result.created} updated={result.updated} "
        f"failures={result.failures}"
    )
    return result


def create_square_customer(
    gateway: SquareClient,
    email: str,
    given_name: Optional[str] = None,
    family_name: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create a customer profile in Square and return it."""
    if not email:
        raise DomainValidationError("email is required")
    customer = gateway.create_customer({
        "email_address": email,
        "given_name": given_name,
        "family_name": family_name,
        "phone_number": phone,
        "address": address,
    })
    logger.info(f"Created Square customer {customer.get('id')}")
    return customer
