"""
Pydantic schemas for payment endpoints.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PaymentConfigResponse(BaseModel):
    """Public values the browser needs to load the Square Web Payments SDK."""
    application_id: str
    location_id: str
    ach_enabled: bool


class ChargeRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount in dollars, at most two decimals")
    student_id: str = Field(..., min_length=1)
    source_id: str = Field(..., min_length=1, description="Card or bank token from the Web Payments SDK")
    verification_token: Optional[str] = None
    email: Optional[str] = None
    payment_method: str = Field("CARD", pattern="^(CARD|ACH)$")
    account_holder_name: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "25.00",
                "student_id": "S-1001",
                "source_id": "cnon:card-nonce-ok",
                "payment_method": "CARD"
            }
        }


class ChargeResponse(BaseModel):
    payment_id: str
    status: str
    receipt_url: Optional[str] = None
    applied_to_plan: bool


class PaymentSyncResponse(BaseModel):
    imported_count: int


class PaymentRecordResponse(BaseModel):
    id: int
    square_payment_id: str
    amount: Decimal
    currency: str
    status: str
    student_id: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
