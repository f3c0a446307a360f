"""
Pydantic schemas for payment plan endpoints.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class CreatePlanRequest(BaseModel):
    """Request schema for creating a payment plan."""
    student_id: str = Field(..., min_length=1, description="Student reference")
    email: Optional[EmailStr] = Field(None, description="Where Square sends the invoice")
    cadence: str = Field("MONTHLY", pattern="^(WEEKLY|BIWEEKLY|MONTHLY)$")
    total_due: Decimal = Field(..., gt=0)
    installment_amount: Decimal = Field(..., gt=0)
    invoice_id: Optional[str] = Field(None, description="Existing Square invoice to track")
    send_invoice: bool = Field(False, description="Create and publish a Square installment invoice")

    class Config:
        json_schema_extra = {
            "example": {
                "student_id": "S-1001",
                "email": "parent@example.com",
                "cadence": "MONTHLY",
                "total_due": "100.00",
                "installment_amount": "25.00",
                "send_invoice": False
            }
        }


class CancelPlanRequest(BaseModel):
    reason: Optional[str] = None


class PlanResponse(BaseModel):
    id: int
    student_id: str
    email: Optional[str] = None
    cadence: str
    total_due: Decimal
    installment_amount: Decimal
    remaining: Decimal
    status: str
    invoice_id: Optional[str] = None
    invoice_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
