"""payments_baseline

Revision ID: 4c1e7a9b2d10
Revises: 
Create Date: 2026-10-17 09:12:41.518204

Production-safe migration: only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '4c1e7a9b2d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(), nullable=False),
            sa.Column('password_hash', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('full_name', sa.String(), nullable=True),
            sa.Column('permissions', sa.Integer(), nullable=False),
            sa.Column('active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.Column('last_login', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('square_subscription_id', sa.String(), nullable=False),
            sa.Column('square_customer_id', sa.String(), nullable=False),
            sa.Column('square_plan_id', sa.String(), nullable=False),
            sa.Column('customer_email', sa.String(), nullable=False),
            sa.Column('customer_name', sa.String(), nullable=True),
            sa.Column('amount', sa.Numeric(12, 2), nullable=False),
            sa.Column('amount_paid', sa.Numeric(12, 2), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('currency', sa.String(length=3), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('cancellation_reason', sa.Text(), nullable=True),
            sa.Column('billing_cycle', sa.String(), nullable=True),
            sa.Column('amount_per_payment', sa.Numeric(12, 2), nullable=True),
            sa.Column('frequency', sa.String(), nullable=True),
            sa.Column('estimated_end_date', sa.Date(), nullable=True),
            sa.Column('number_of_payments', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.Column('canceled_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_subscriptions_id'), 'subscriptions', ['id'], unique=False)
        op.create_index(op.f('ix_subscriptions_square_subscription_id'), 'subscriptions', ['square_subscription_id'], unique=True)
        op.create_index(op.f('ix_subscriptions_square_customer_id'), 'subscriptions', ['square_customer_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_customer_email'), 'subscriptions', ['customer_email'], unique=False)
        op.create_index(op.f('ix_subscriptions_status'), 'subscriptions', ['status'], unique=False)

    if not table_exists('subscription_invoices'):
        op.create_table('subscription_invoices',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('subscription_id', sa.Integer(), nullable=False),
            sa.Column('amount', sa.Numeric(12, 2), nullable=False),
            sa.Column('currency', sa.String(length=3), nullable=False),
            sa.Column('square_invoice_id', sa.String(), nullable=True),
            sa.Column('public_url', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('due_date', sa.Date(), nullable=True),
            sa.Column('paid_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_subscription_invoices_id'), 'subscription_invoices', ['id'], unique=False)
        op.create_index(op.f('ix_subscription_invoices_subscription_id'), 'subscription_invoices', ['subscription_id'], unique=False)
        op.create_index(op.f('ix_subscription_invoices_square_invoice_id'), 'subscription_invoices', ['square_invoice_id'], unique=False)

    if not table_exists('subscription_refunds'):
        op.create_table('subscription_refunds',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('subscription_id', sa.Integer(), nullable=False),
            sa.Column('requested_amount', sa.Numeric(12, 2), nullable=False),
            sa.Column('processing_fee', sa.Numeric(12, 2), nullable=False),
            sa.Column('approved_amount', sa.Numeric(12, 2), nullable=True),
            sa.Column('refunded_amount', sa.Numeric(12, 2), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('refund_reason', sa.Text(), nullable=True),
            sa.Column('rejection_reason', sa.Text(), nullable=True),
            sa.Column('square_refund_id', sa.String(), nullable=True),
            sa.Column('requested_by_user_id', sa.Integer(), nullable=True),
            sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.Column('approved_at', sa.DateTime(), nullable=True),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_subscription_refunds_id'), 'subscription_refunds', ['id'], unique=False)
        op.create_index(op.f('ix_subscription_refunds_subscription_id'), 'subscription_refunds', ['subscription_id'], unique=False)
        op.create_index(op.f('ix_subscription_refunds_status'), 'subscription_refunds', ['status'], unique=False)

    if not table_exists('payment_plans'):
        op.create_table('payment_plans',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('student_id', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('cadence', sa.String(), nullable=False),
            sa.Column('total_due', sa.Numeric(12, 2), nullable=False),
            sa.Column('installment_amount', sa.Numeric(12, 2), nullable=False),
            sa.Column('remaining', sa.Numeric(12, 2), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('invoice_id', sa.String(), nullable=True),
            sa.Column('invoice_url', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_payment_plans_id'), 'payment_plans', ['id'], unique=False)
        op.create_index(op.f('ix_payment_plans_student_id'), 'payment_plans', ['student_id'], unique=False)
        op.create_index(op.f('ix_payment_plans_status'), 'payment_plans', ['status'], unique=False)
        op.create_index(op.f('ix_payment_plans_invoice_id'), 'payment_plans', ['invoice_id'], unique=False)

    if not table_exists('payment_records'):
        op.create_table('payment_records',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('square_payment_id', sa.String(), nullable=False),
            sa.Column('amount', sa.Numeric(12, 2), nullable=False),
            sa.Column('currency', sa.String(length=3), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('student_id', sa.String(), nullable=True),
            sa.Column('receipt_url', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_payment_records_id'), 'payment_records', ['id'], unique=False)
        op.create_index(op.f('ix_payment_records_square_payment_id'), 'payment_records', ['square_payment_id'], unique=True)
        op.create_index(op.f('ix_payment_records_student_id'), 'payment_records', ['student_id'], unique=False)

    if not table_exists('admin_users'):
        op.create_table('admin_users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(), nullable=False),
            sa.Column('password_hash', sa.String(), nullable=False),
            sa.Column('role', sa.String(), nullable=False),
            sa.Column('active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('last_login', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_admin_users_id'), 'admin_users', ['id'], unique=False)
        op.create_index(op.f('ix_admin_users_username'), 'admin_users', ['username'], unique=True)

    if not table_exists('managed_services'):
        op.create_table('managed_services',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('service_name', sa.String(), nullable=False),
            sa.Column('service_url', sa.String(), nullable=False),
            sa.Column('service_port', sa.Integer(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('enabled', sa.Boolean(), nullable=False),
            sa.Column('healthy', sa.Boolean(), nullable=False),
            sa.Column('health_check_url', sa.String(), nullable=True),
            sa.Column('logs_url', sa.String(), nullable=True),
            sa.Column('last_health_check', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_managed_services_id'), 'managed_services', ['id'], unique=False)
        op.create_index(op.f('ix_managed_services_service_name'), 'managed_services', ['service_name'], unique=True)

    if not table_exists('system_logs'):
        op.create_table('system_logs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('received_at', sa.DateTime(), nullable=False),
            sa.Column('hostname', sa.String(length=255), nullable=False),
            sa.Column('program', sa.String(length=255), nullable=False),
            sa.Column('severity', sa.Integer(), nullable=False),
            sa.Column('facility', sa.Integer(), nullable=False),
            sa.Column('message', sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_system_logs_id'), 'system_logs', ['id'], unique=False)
        op.create_index(op.f('ix_system_logs_received_at'), 'system_logs', ['received_at'], unique=False)


def downgrade() -> None:
    """Downgrade: drop all payment tables."""
    op.drop_table('system_logs')
    op.drop_table('managed_services')
    op.drop_table('admin_users')
    op.drop_table('payment_records')
    op.drop_table('payment_plans')
    op.drop_table('subscription_refunds')
    op.drop_table('subscription_invoices')
    op.drop_table('subscriptions')
    op.drop_table('users')
