"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from app.db.models.user import User, Permission
from app.db.models.subscription import Subscription, SubscriptionStatus
from app.db.models.subscription_invoice import SubscriptionInvoice, InvoiceStatus
from app.db.models.refund import SubscriptionRefund, RefundStatus
from app.db.models.payment_plan import PaymentPlan, PlanStatus, PlanCadence
from app.db.models.payment_record import PaymentRecord
from app.db.models.admin_user import AdminUser
from app.db.models.managed_service import ManagedService
from app.db.models.system_log import SystemLog

__all__ = [
    "User",
    "Permission",
    "Subscription",
    "SubscriptionStatus",
    "SubscriptionInvoice",
    "InvoiceStatus",
    "SubscriptionRefund",
    "RefundStatus",
    "PaymentPlan",
    "PlanStatus",
    "PlanCadence",
    "PaymentRecord",
    "AdminUser",
    "ManagedService",
    "SystemLog",
]
