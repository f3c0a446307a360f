"""
Pydantic schemas for refund endpoints.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class RequestRefundRequest(BaseModel):
    """Request schema for opening a refund."""
    subscription_id: int = Field(..., description="Local subscription id")
    requested_amount: Decimal = Field(..., gt=0, decimal_places=2, description="Amount to refund")
    reason: Optional[str] = Field(None, max_length=2000, description="Why the customer wants a refund")

    class Config:
        json_schema_extra = {
            "example": {
                "subscription_id": 42,
                "requested_amount": "50.00",
                "reason": "Course canceled"
            }
        }


class ApproveRefundRequest(BaseModel):
    processing_fee_percent: Optional[Decimal] = Field(
        None, ge=0, le=100, description="Fee withheld, in percent (default 2.5)"
    )
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "processing_fee_percent": "2.5",
                "notes": "Approved per policy"
            }
        }


class RejectRefundRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the refund was rejected")


class CompleteRefundRequest(BaseModel):
    square_refund_id: Optional[str] = Field(None, description="Square refund id")
    refunded_amount: Optional[Decimal] = Field(None, ge=0, description="Amount actually refunded")


class FailRefundRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class UpdateNotesRequest(BaseModel):
    notes: Optional[str] = None


class RefundResponse(BaseModel):
    id: int
    subscription_id: int
    requested_amount: Decimal
    processing_fee: Decimal
    approved_amount: Optional[Decimal] = None
    refunded_amount: Optional[Decimal] = None
    net_refund_amount: Decimal
    status: str
    refund_reason: Optional[str] = None
    rejection_reason: Optional[str] = None
    square_refund_id: Optional[str] = None
    requested_by_user_id: Optional[int] = None
    approved_by_user_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class RefundStatsResponse(BaseModel):
    pending_approvals: int
    completed: int
    total_refunded: Decimal
    total_fees: Decimal


class CountResponse(BaseModel):
    count: int
