"""
Import of completed Square payments into the local ledger.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.db.models.payment_record import PaymentRecord
from app.repositories import payment_record_repository
from app.services.square_client import SquareClient

logger = logging.getLogger(__name__)

OVERLAP = timedelta(seconds=5)
PAGE_LIMIT = 100


@dataclass
class SyncResult:
    imported_count: int


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Square RFC 3339 timestamp into a naive UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable Square timestamp: {value}")
        return None
    if parsed.tzinfo is not None:
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return parsed


def _save_if_new(db: Session, payment: Dict[str, Any]) -> bool:
    payment_id = payment.get("id")
    if not payment_id or payment_record_repository.exists_by_square_id(db, payment_id):
        return False

    money = payment.get("amount_money") or {}
    cents = money.get("amount") or 0
    record = PaymentRecord(
        square_payment_id=payment_id,
        amount=(Decimal(cents) / 100).quantize(Decimal("0.01")),
        currency=money.get("currency") or "USD",
        status=payment.get("status") or "UNKNOWN",
        student_id=payment.get("reference_id"),
        receipt_url=payment.get("receipt_url"),
        created_at=parse_timestamp(payment.get("created_at")) or datetime.utcnow(),
        updated_at=parse_timestamp(payment.get("updated_at")),
    )
    db.add(record)
    return True


def sync_payments(db: Session, client: SquareClient) -> SyncResult:
    """
    Pull payments created since the newest imported record.

    The window starts five seconds before the latest local record so that
    payments sharing its timestamp are not missed; already-imported ids are
    skipped.

    Returns:
        SyncResult with the number of newly stored payments
    """
    client.require_token()
    location_id = client.require_location()

    latest = payment_record_repository.latest_created_at(db)
    begin_time = (latest - OVERLAP).strftime("%Y-%m-%dT%H:%M:%SZ") if latest else None

    imported = 0
    cursor = None
    while True:
        body: Dict[str, Any] = {
            "location_ids": [location_id],
            "sort_order": "ASC",
            "limit": PAGE_LIMIT,
        }
        if begin_time:
            body["begin_time"] = begin_time
        if cursor:
            body["cursor"] = cursor

        page = client.request("POST", "/v2/payments/search", json=body)
        for payment in page.get("payments") or []:
            if _save_if_new(db, payment):
                imported += 1
        db.commit()

        cursor = page.get("cursor")
        if not cursor:
            break

    logger.info(f"Imported {imported} Square payments (since {begin_time or 'beginning'})")
    return SyncResult(imported_count=imported)
