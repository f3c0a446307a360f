"""
Shared fixtures: in-memory SQLite database, a fake Square gateway and a
TestClient wired to both.
"""
import os

# Settings are read once; set them before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("HMAC_SECRET", "test-ingest-secret")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SQUARE_API_TOKEN", "EAAAE-test-token")
os.environ.setdefault("SQUARE_LOCATION_ID", "LOC123")
os.environ.setdefault("SQUARE_APPLICATION_ID", "sandbox-sq0idb-test")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth_dependency import get_db
from app.core.errors import SquareAPIError
from app.db.base import Base
import app.db.models  # noqa: F401
from app.db.models.subscription import Subscription
from app.main import app
from app.services.square_client import get_square_client


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FakeSquareGateway:
    """Records calls made by the services; can be told to fail cancels and lookups."""

    def __init__(self):
        self.calls = []
        self.fail_cancel = False
        self.remote_subscriptions = []
        self.customers = {}
        self.remote_status = "ACTIVE"
        self.fail_get_for = set()

    def cancel_subscription(self, square_subscription_id):
        self.calls.append(("cancel", square_subscription_id))
        if self.fail_cancel:
            raise SquareAPIError("Square unavailable", status_code=503)
        return {"id": square_subscription_id, "status": "CANCELED"}

    def pause_subscription(self, square_subscription_id):
        self.calls.append(("pause", square_subscription_id))
        return {"id": square_subscription_id, "status": "PAUSED"}

    def resume_subscription(self, square_subscription_id):
        self.calls.append(("resume", square_subscription_id))
        return {"id": square_subscription_id, "status": "ACTIVE"}

    def get_subscription(self, square_subscription_id):
        self.calls.append(("get", square_subscription_id))
        if square_subscription_id in self.fail_get_for:
            raise SquareAPIError("Subscription not found", status_code=404, category="INVALID_REQUEST_ERROR")
        return {"id": square_subscription_id, "status": self.remote_status}

    def iter_subscriptions(self):
        return iter(self.remote_subscriptions)

    def get_customer(self, customer_id):
        return self.customers.get(customer_id, {})

    def create_customer(self, customer):
        self.calls.append(("create_customer", customer.get("email_address")))
        return {"id": "CUST-NEW", **{k: v for k, v in customer.items() if v is not None}}


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def gateway():
    return FakeSquareGateway()


@pytest.fixture
def client(db, gateway):
    """TestClient using the test database and the fake gateway."""
    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_square_client] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_subscription(db):
    """Factory for ACTIVE subscriptions."""
    counter = {"n": 0}

    def _make(amount="200.00", status="ACTIVE", amount_paid="0.00", email="parent@example.com"):
        counter["n"] += 1
        sub = Subscription(
            square_subscription_id=f"sq-sub-{counter['n']}",
            square_customer_id=f"sq-cust-{counter['n']}",
            square_plan_id="plan-1",
            customer_email=email,
            amount=Decimal(amount),
            amount_paid=Decimal(amount_paid),
            status=status,
            currency="USD",
        )
        db.add(sub)
        db.commit()
        db.refresh(sub)
        return sub

    return _make


@pytest.fixture
def anyio_backend():
    return "asyncio"
