"""
Pydantic schemas for subscription endpoints.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field


class CreateSubscriptionRequest(BaseModel):
    """Request schema for registering a Square subscription locally."""
    square_subscription_id: str = Field(..., min_length=1)
    square_customer_id: str = Field(..., min_length=1)
    square_plan_id: str = Field(..., min_length=1)
    customer_email: EmailStr
    customer_name: Optional[str] = None
    amount: Decimal = Field(..., gt=0, description="Total amount owed over the subscription")
    currency: str = Field("USD", min_length=3, max_length=3)
    description: Optional[str] = None
    billing_cycle: Optional[str] = "MONTHLY"
    amount_per_payment: Optional[Decimal] = Field(None, gt=0)
    frequency: Optional[str] = None
    estimated_end_date: Optional[date] = None
    number_of_payments: Optional[int] = Field(None, ge=1)

    class Config:
        json_schema_extra = {
            "example": {
                "square_subscription_id": "sub_123",
                "square_customer_id": "cust_456",
                "square_plan_id": "plan_789",
                "customer_email": "parent@example.com",
                "amount": "600.00",
                "amount_per_payment": "100.00",
                "frequency": "MONTHLY",
                "number_of_payments": 6
            }
        }


class SubscriptionResponse(BaseModel):
    id: int
    square_subscription_id: str
    square_customer_id: str
    square_plan_id: str
    customer_email: str
    customer_name: Optional[str] = None
    amount: Decimal
    amount_paid: Decimal
    status: str
    currency: str
    description: Optional[str] = None
    billing_cycle: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    amount_per_payment: Optional[Decimal] = None
    frequency: Optional[str] = None
    estimated_end_date: Optional[date] = None
    number_of_payments: Optional[int] = None

    class Config:
        from_attributes = True


class CancelSubscriptionRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class UpdateAmountRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class UpdateStatusRequest(BaseModel):
    status: str = Field(..., min_length=1, description="One of PENDING, ACTIVE, PAUSED, CANCELED, EXPIRED, ERROR")


class RecordPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class CreateInvoiceRequest(BaseModel):
    installment_amount: Decimal = Field(..., gt=0)
    cadence: str = Field("MONTHLY", pattern="^(WEEKLY|BIWEEKLY|MONTHLY)$")


class MarkInvoicePaidRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)


class InvoiceResponse(BaseModel):
    id: int
    subscription_id: int
    amount: Decimal
    currency: str
    square_invoice_id: Optional[str] = None
    public_url: Optional[str] = None
    status: str
    created_at: datetime
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubscriptionStatsResponse(BaseModel):
    total: int
    active: int
    canceled: int


class SyncFromSquareResponse(BaseModel):
    created: int
    updated: int
    failures: int
    error_message: Optional[str] = None


class StatusSyncResponse(BaseModel):
    synced: int
    failed: int


class CompletionCheckResponse(BaseModel):
    completed: int


class CreateSquareCustomerRequest(BaseModel):
    email: EmailStr
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Dict[str, Any]] = None


class SquareCustomerResponse(BaseModel):
    id: Optional[str] = None
    email_address: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
