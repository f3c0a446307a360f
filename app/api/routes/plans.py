import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db
from app.schemas.common import PageResponse, to_page_response
from app.schemas.plan import CreatePlanRequest, CancelPlanRequest, PlanResponse
from app.services import payment_plan_service
from app.services.square_client import SquareClient, get_square_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plans", tags=["Payment Plans"])


@router.get("", response_model=PageResponse[PlanResponse])
def list_plans(
    page: int = 0,
    size: int = 25,
    student_id: Optional[str] = None,
    plan_status: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return to_page_response(
        payment_plan_service.list_plans(db, student_id, plan_status, page, size), PlanResponse
    )


@router.get("/student/{student_id}/active", response_model=PlanResponse)
def active_plan_for_student(student_id: str, db: Session = Depends(get_db)):
    plan = payment_plan_service.find_active_plan(db, student_id)
    if not plan:
        raise HTTPException(status_code=404, detail="No active payment plan for student")
    return plan


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: int, db: Session = Depends(get_db)):
    return payment_plan_service.get_plan(db, plan_id)


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    body: CreatePlanRequest,
    db: Session = Depends(get_db),
    gateway: SquareClient = Depends(get_square_client),
):
    return payment_plan_service.create_plan(
        db,
        student_id=body.student_id,
        total_due=body.total_due,
        installment_amount=body.installment_amount,
        cadence=body.cadence,
        email=body.email,
        invoice_id=body.invoice_id,
        gateway=gateway,
        send_invoice=body.send_invoice,
    )


@router.put("/{plan_id}/complete", response_model=PlanResponse)
def complete_plan(plan_id: int, db: Session = Depends(get_db)):
    if not payment_plan_service.complete_plan(db, plan_id):
        raise HTTPException(status_code=404, detail="Payment plan not found")
    return payment_plan_service.get_plan(db, plan_id)


@router.put("/{plan_id}/cancel", response_model=PlanResponse)
def cancel_plan(plan_id: int, body: Optional[CancelPlanRequest] = None, db: Session = Depends(get_db)):
    reason = body.reason if body else None
    if not payment_plan_service.cancel_plan(db, plan_id, reason):
        raise HTTPException(status_code=404, detail="Payment plan not found")
    return payment_plan_service.get_plan(db, plan_id)
