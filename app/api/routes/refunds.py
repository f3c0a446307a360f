"""
Refund workflow endpoints.

The operator performing an action is identified by the X-User-Id header.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, get_acting_user_id
from app.schemas.common import PageResponse, to_page_response
from app.schemas.refund import (
    RequestRefundRequest,
    ApproveRefundRequest,
    RejectRefundRequest,
    CompleteRefundRequest,
    FailRefundRequest,
    UpdateNotesRequest,
    RefundResponse,
    RefundStatsResponse,
    CountResponse,
)
from app.services import refund_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/refunds", tags=["Refunds"])


@router.post("/request", response_model=RefundResponse, status_code=status.HTTP_201_CREATED)
def request_refund(
    body: RequestRefundRequest,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return refund_service.request_refund(
        db, body.subscription_id, body.requested_amount, body.reason, user_id
    )


@router.get("", response_model=PageResponse[RefundResponse])
def list_refunds(page: int = 0, size: int = 25, db: Session = Depends(get_db)):
    return to_page_response(refund_service.list_refunds(db, page, size), RefundResponse)


@router.get("/pending-approvals", response_model=List[RefundResponse])
def pending_approvals(db: Session = Depends(get_db)):
    return refund_service.list_pending_approvals(db)


@router.get("/pending-approvals/count", response_model=CountResponse)
def pending_approvals_count(db: Session = Depends(get_db)):
    return {"count": refund_service.count_pending_approvals(db)}


@router.get("/pending-square-processing", response_model=List[RefundResponse])
def pending_square_processing(db: Session = Depends(get_db)):
    return refund_service.list_pending_square_processing(db)


@router.get("/date-range", response_model=List[RefundResponse])
def refunds_between(
    start: datetime = Query(..., description="Inclusive lower bound (ISO 8601)"),
    end: datetime = Query(..., description="Inclusive upper bound (ISO 8601)"),
    db: Session = Depends(get_db),
):
    return refund_service.list_created_between(db, start, end)


@router.get("/stats/overview", response_model=RefundStatsResponse)
def refund_stats(db: Session = Depends(get_db)):
    return refund_service.get_statistics(db)


@router.get("/status/{refund_status}", response_model=PageResponse[RefundResponse])
def refunds_by_status(refund_status: str, page: int = 0, size: int = 25, db: Session = Depends(get_db)):
    return to_page_response(
        refund_service.list_by_status(db, refund_status, page, size), RefundResponse
    )


@router.get("/subscription/{subscription_id}", response_model=List[RefundResponse])
def refunds_for_subscription(subscription_id: int, db: Session = Depends(get_db)):
    return refund_service.list_for_subscription(db, subscription_id)


@router.get("/subscription/{subscription_id}/page", response_model=PageResponse[RefundResponse])
def refunds_for_subscription_paged(
    subscription_id: int, page: int = 0, size: int = 25, db: Session = Depends(get_db)
):
    return to_page_response(
        refund_service.page_for_subscription(db, subscription_id, page, size), RefundResponse
    )


@router.get("/{refund_id}", response_model=RefundResponse)
def get_refund(refund_id: int, db: Session = Depends(get_db)):
    return refund_service.get_refund(db, refund_id)


@router.post("/{refund_id}/approve", response_model=RefundResponse)
def approve_refund(
    refund_id: int,
    body: Optional[ApproveRefundRequest] = None,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    body = body or ApproveRefundRequest()
    return refund_service.approve_refund(
        db, refund_id, body.processing_fee_percent, body.notes, user_id
    )


@router.post("/{refund_id}/reject", response_model=RefundResponse)
def reject_refund(
    refund_id: int,
    body: RejectRefundRequest,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    return refund_service.reject_refund(db, refund_id, body.reason, user_id)


@router.post("/{refund_id}/mark-processing", response_model=RefundResponse)
def mark_processing(refund_id: int, db: Session = Depends(get_db)):
    return refund_service.mark_as_processing(db, refund_id)


@router.post("/{refund_id}/complete", response_model=RefundResponse)
def complete_refund(refund_id: int, body: CompleteRefundRequest, db: Session = Depends(get_db)):
    return refund_service.complete_refund(db, refund_id, body.square_refund_id, body.refunded_amount)


@router.post("/{refund_id}/fail", response_model=RefundResponse)
def fail_refund(refund_id: int, body: FailRefundRequest, db: Session = Depends(get_db)):
    return refund_service.fail_refund(db, refund_id, body.reason)


@router.put("/{refund_id}/notes", response_model=RefundResponse)
def update_notes(refund_id: int, body: UpdateNotesRequest, db: Session = Depends(get_db)):
    return refund_service.update_notes(db, refund_id, body.notes)
