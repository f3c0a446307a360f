"""
Payment endpoints: SDK config, charges, Square payment import and the
Square webhook.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db
from app.core.config import Settings, get_settings
from app.repositories import payment_record_repository
from app.repositories.pagination import paginate
from app.schemas.common import PageResponse, to_page_response
from app.schemas.payment import (
    PaymentConfigResponse,
    ChargeRequest,
    ChargeResponse,
    PaymentSyncResponse,
    PaymentRecordResponse,
)
from app.services import payment_plan_service, square_payment_service, square_payment_sync_service
from app.services.square_client import SquareClient, get_square_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.get("/config", response_model=PaymentConfigResponse)
def payment_config(settings: Settings = Depends(get_settings)):
    """Values for the browser SDK; 503 until Square is configured."""
    if not settings.square_application_id or not settings.square_location_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Square payments are not configured"
        )
    return {
        "application_id": settings.square_application_id,
        "location_id": settings.square_location_id,
        "ach_enabled": settings.square_ach_enabled,
    }


@router.post("/charge", response_model=ChargeResponse)
def charge(
    body: ChargeRequest,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    """
    Charge the tokenized source, then apply the amount to the student's
    active payment plan (if any).
    """
    result = square_payment_service.take_payment(
        gateway,
        amount=body.amount,
        student_id=body.student_id,
        source_id=body.source_id,
        verification_token=body.verification_token,
        buyer_email=body.email,
        payment_method=body.payment_method,
        account_holder_name=body.account_holder_name,
    )
    applied = payment_plan_service.apply_payment_by_student_id(
        db, body.student_id, body.amount, result.payment_id
    )
    return {
        "payment_id": result.payment_id,
        "status": result.status,
        "receipt_url": result.receipt_url,
        "applied_to_plan": applied,
    }


@router.post("/sync", response_model=PaymentSyncResponse)
def sync_payments(db: Session = Depends(get_db), gateway: SquareClient = Depends(get_square_client)):
    return square_payment_sync_service.sync_payments(db, gateway)


@router.get("/history", response_model=PageResponse[PaymentRecordResponse])
def payment_history(
    page: int = 0,
    size: int = 25,
    student_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = payment_record_repository.query_history(db, student_id)
    return to_page_response(paginate(query, page, size), PaymentRecordResponse)


@router.post("/webhook")
async def square_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Square event intake. Always answers 200 so Square does not retry;
    processing problems are logged.
    """
    payload = await request.body()
    event_type = None
    try:
        event_type = json.loads(payload or b"{}").get("type")
    except (ValueError, AttributeError):
        logger.warning("Square webhook with unparseable body")
        return {"status": "ignored"}

    logger.info(f"Square webhook received: {event_type}")
    await run_in_threadpool(
        payment_plan_service.handle_square_webhook, db, payload.decode("utf-8"), event_type
    )
    return {"status": "received"}
