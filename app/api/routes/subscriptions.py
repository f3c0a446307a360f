"""
Subscription endpoints, including the Square synchronisation triggers.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db
from app.schemas.common import PageResponse, to_page_response
from app.schemas.subscription import (
    CreateSubscriptionRequest,
    SubscriptionResponse,
    CancelSubscriptionRequest,
    UpdateAmountRequest,
    UpdateStatusRequest,
    RecordPaymentRequest,
    CreateInvoiceRequest,
    MarkInvoicePaidRequest,
    InvoiceResponse,
    SubscriptionStatsResponse,
    SyncFromSquareResponse,
    StatusSyncResponse,
    CompletionCheckResponse,
    CreateSquareCustomerRequest,
    SquareCustomerResponse,
)
from app.services import subscription_service
from app.services.square_client import SquareClient, get_square_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(body: CreateSubscriptionRequest, db: Session = Depends(get_db)):
    return subscription_service.create_subscription(db, body.model_dump())


@router.get("", response_model=PageResponse[SubscriptionResponse])
def list_subscriptions(page: int = 0, size: int = 25, db: Session = Depends(get_db)):
    return to_page_response(subscription_service.list_subscriptions(db, page, size), SubscriptionResponse)


@router.get("/active", response_model=PageResponse[SubscriptionResponse])
def list_active(page: int = 0, size: int = 25, db: Session = Depends(get_db)):
    return to_page_response(subscription_service.list_active(db, page, size), SubscriptionResponse)


@router.get("/search", response_model=PageResponse[SubscriptionResponse])
def search_subscriptions(
    query: str = Query(..., min_length=1),
    page: int = 0,
    size: int = 25,
    db: Session = Depends(get_db),
):
    return to_page_response(subscription_service.search(db, query, page, size), SubscriptionResponse)


@router.get("/stats/overview", response_model=SubscriptionStatsResponse)
def subscription_stats(db: Session = Depends(get_db)):
    return subscription_service.get_statistics(db)


@router.get("/status/{subscription_status}", response_model=List[SubscriptionResponse])
def by_status(subscription_status: str, db: Session = Depends(get_db)):
    return subscription_service.list_by_status(db, subscription_status)


@router.get("/customer/{email}", response_model=PageResponse[SubscriptionResponse])
def by_customer_email(email: str, page: int = 0, size: int = 25, db: Session = Depends(get_db)):
    return to_page_response(subscription_service.list_by_email(db, email, page, size), SubscriptionResponse)


@router.get("/square-customer/{customer_id}", response_model=List[SubscriptionResponse])
def by_square_customer(customer_id: str, db: Session = Depends(get_db)):
    return subscription_service.list_by_customer_id(db, customer_id)


@router.get("/square/{square_subscription_id}", response_model=SubscriptionResponse)
def by_square_id(square_subscription_id: str, db: Session = Depends(get_db)):
    return subscription_service.get_by_square_id(db, square_subscription_id)


@router.post("/square/{square_subscription_id}/cancel", response_model=SubscriptionResponse)
def cancel_by_square_id(
    square_subscription_id: str,
    body: Optional[CancelSubscriptionRequest] = None,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    reason = body.reason if body else None
    return subscription_service.cancel_subscription_by_square_id(db, gateway, square_subscription_id, reason)


@router.post("/square/customers", response_model=SquareCustomerResponse, status_code=status.HTTP_201_CREATED)
def create_square_customer(
    body: CreateSquareCustomerRequest,
    gateway: SquareClient = Depends(get_square_client),
):
    return subscription_service.create_square_customer(
        gateway, body.email, body.given_name, body.family_name, body.phone, body.address
    )


@router.post("/sync-all-status", response_model=StatusSyncResponse)
def sync_all_statuses(db: Session = Depends(get_db), gateway: SquareClient = Depends(get_square_client)):
    return subscription_service.sync_all_subscription_statuses(db, gateway)


@router.post("/sync-from-square", response_model=SyncFromSquareResponse)
def sync_from_square(db: Session = Depends(get_db), gateway: SquareClient = Depends(get_square_client)):
    return subscription_service.sync_all_subscriptions_from_square(db, gateway)


@router.post("/check-completion", response_model=CompletionCheckResponse)
def check_completion(db: Session = Depends(get_db), gateway: SquareClient = Depends(get_square_client)):
    return {"completed": subscription_service.check_and_complete_subscriptions(db, gateway)}


@router.post("/invoices/{invoice_id}/paid", response_model=InvoiceResponse)
def mark_invoice_paid(
    invoice_id: int,
    body: Optional[MarkInvoicePaidRequest] = None,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    amount = body.amount if body else None
    return subscription_service.mark_invoice_paid(db, gateway, invoice_id, amount)


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(subscription_id: int, db: Session = Depends(get_db)):
    return subscription_service.get_subscription(db, subscription_id)


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    subscription_id: int,
    body: Optional[CancelSubscriptionRequest] = None,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    reason = body.reason if body else None
    return subscription_service.cancel_subscription(db, gateway, subscription_id, reason)


@router.post("/{subscription_id}/pause", response_model=SubscriptionResponse)
def pause_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    return subscription_service.pause_subscription(db, gateway, subscription_id)


@router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
def resume_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    return subscription_service.resume_subscription(db, gateway, subscription_id)


@router.put("/{subscription_id}/status", response_model=SubscriptionResponse)
def update_status(subscription_id: int, body: UpdateStatusRequest, db: Session = Depends(get_db)):
    """Administrative status override; no Square call is made."""
    return subscription_service.update_subscription_status(db, subscription_id, body.status)


@router.put("/{subscription_id}/amount", response_model=SubscriptionResponse)
def update_amount(subscription_id: int, body: UpdateAmountRequest, db: Session = Depends(get_db)):
    return subscription_service.update_subscription_amount(db, subscription_id, body.amount)


@router.post("/{subscription_id}/payments", response_model=SubscriptionResponse)
def record_payment(
    subscription_id: int,
    body: RecordPaymentRequest,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    return subscription_service.record_payment(db, gateway, subscription_id, body.amount)


@router.get("/{subscription_id}/invoices", response_model=List[InvoiceResponse])
def list_invoices(subscription_id: int, db: Session = Depends(get_db)):
    return subscription_service.list_invoices(db, subscription_id)


@router.post("/{subscription_id}/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(
    subscription_id: int,
    body: CreateInvoiceRequest,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    return subscription_service.create_invoice_for_subscription(
        db, gateway, subscription_id, body.installment_amount, body.cadence
    )


@router.post("/{subscription_id}/sync-status", response_model=SubscriptionResponse)
def sync_status(
    subscription_id: int,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    return subscription_service.sync_subscription_status_from_square(db, gateway, subscription_id)
