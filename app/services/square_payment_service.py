"""
Card / ACH charges through the Square Payments API.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.core.errors import DomainValidationError, SquareAPIError
from app.services.square_client import SquareClient

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    payment_id: str
    status: str
    receipt_url: Optional[str] = None


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a major-unit amount to cents.

    Raises:
        DomainValidationError: If the amount has more than two decimal places
    """
    try:
        scaled = Decimal(amount) * 100
    except InvalidOperation as e:
        raise DomainValidationError("amount is not a number") from e
    if scaled != scaled.to_integral_value():
        raise DomainValidationError("amount must have at most two decimal places")
    return int(scaled)


def take_payment(
    client: SquareClient,
    amount: Decimal,
    student_id: str,
    source_id: str,
    verification_token: Optional[str] = None,
    buyer_email: Optional[str] = None,
    payment_method: Optional[str] = "CARD",
    account_holder_name: Optional[str] = None,
) -> PaymentResult:
    """
    Charge a tokenized card or bank account.

    Args:
        client: Square client
        amount: Amount in dollars, at most two decimals
        student_id: Stored as the payment reference id
        source_id: Web Payments SDK token
        verification_token: Optional SCA verification token
        buyer_email: Optional receipt email
        payment_method: CARD or ACH (metadata only)
        account_holder_name: Optional, ACH only

    Returns:
        PaymentResult with the Square payment id, status and receipt URL
    """
    if amount is None or Decimal(amount) <= 0:
        raise DomainValidationError("amount must be greater than zero")
    if not source_id or not source_id.strip():
        raise DomainValidationError("sourceId is required")
    client.require_token()
    location_id = client.require_location()
    cents = to_minor_units(amount)

    body = {
        "idempotency_key": str(uuid.uuid4()),
        "amount_money": {"amount": cents, "currency": "USD"},
        "source_id": source_id,
        "location_id": location_id,
        "autocomplete": True,
        "reference_id": student_id,
        "note": f"Student Payment {student_id}",
    }
    if verification_token:
        body["verification_token"] = verification_token
    if buyer_email:
        body["buyer_email_address"] = buyer_email

    metadata = {
        "student_id": student_id,
        "payment_method": payment_method,
        "account_holder_name": account_holder_name,
    }
    metadata = {k: v for k, v in metadata.items() if v}
    if metadata:
        body["metadata"] = metadata

    logger.info(f"Charging {cents} cents for student {student_id}")
    response = client.request("POST", "/v2/payments", json=body)

    payment = response.get("payment")
    if not payment or not payment.get("id"):
        raise SquareAPIError("Square returned no payment", status_code=502)

    result = PaymentResult(
        payment_id=payment["id"],
        status=payment.get("status", "UNKNOWN"),
        receipt_url=payment.get("receipt_url"),
    )
    logger.info(f"Square payment {result.payment_id} status={result.status}")
    return result
