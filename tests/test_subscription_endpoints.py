"""
Integration tests for /api/subscriptions.
"""
from decimal import Decimal


NEW_SUBSCRIPTION = {
    "square_subscription_id": "sub_api_1",
    "square_customer_id": "cust_1",
    "square_plan_id": "plan_1",
    "customer_email": "parent@example.com",
    "amount": "300.00",
}


def test_create_and_fetch(client):
    created = client.post("/api/subscriptions", json=NEW_SUBSCRIPTION)
    assert created.status_code == 201
    sub = created.json()
    assert sub["status"] == "ACTIVE"
    assert Decimal(sub["amount_paid"]) == Decimal("0")

    assert client.get(f"/api/subscriptions/{sub['id']}").json()["square_subscription_id"] == "sub_api_1"
    assert client.get("/api/subscriptions/square/sub_api_1").json()["id"] == sub["id"]
    assert client.post("/api/subscriptions", json=NEW_SUBSCRIPTION).status_code == 400


def test_payments_complete_subscription(client, gateway):
    sub = client.post("/api/subscriptions", json=NEW_SUBSCRIPTION).json()

    partial = client.post(f"/api/subscriptions/{sub['id']}/payments", json={"amount": "100.00"})
    assert partial.json()["status"] == "ACTIVE"

    final = client.post(f"/api/subscriptions/{sub['id']}/payments", json={"amount": "200.00"})
    assert final.json()["status"] == "CANCELED"
    assert ("cancel", "sub_api_1") in gateway.calls


def test_cancel_gateway_failure_returns_error(client, gateway):
    sub = client.post("/api/subscriptions", json=NEW_SUBSCRIPTION).json()
    gateway.fail_cancel = True

    response = client.post(f"/api/subscriptions/{sub['id']}/cancel", json={"reason": "moving"})
    assert response.status_code == 503
    assert client.get(f"/api/subscriptions/{sub['id']}").json()["status"] == "ACTIVE"


def test_pause_requires_active(client):
    sub = client.post("/api/subscriptions", json=NEW_SUBSCRIPTION).json()

    assert client.post(f"/api/subscriptions/{sub['id']}/resume").status_code == 400
    assert client.post(f"/api/subscriptions/{sub['id']}/pause").json()["status"] == "PAUSED"
    assert client.post(f"/api/subscriptions/{sub['id']}/resume").json()["status"] == "ACTIVE"


def test_search_and_stats(client):
    client.post("/api/subscriptions", json=NEW_SUBSCRIPTION)

    found = client.get("/api/subscriptions/search", params={"query": "PARENT@"})
    assert found.json()["total"] == 1
    assert client.get("/api/subscriptions/stats/overview").json() == {"total": 1, "active": 1, "canceled": 0}
    assert client.get("/api/subscriptions/customer/parent@example.com").json()["total"] == 1


def test_unknown_subscription_is_404(client):
    assert client.get("/api/subscriptions/12345").status_code == 404
    assert client.get("/api/subscriptions/square/nope").status_code == 404


def test_status_listing_and_override(client):
    sub = client.post("/api/subscriptions", json=NEW_SUBSCRIPTION).json()

    assert [s["id"] for s in client.get("/api/subscriptions/status/active").json()] == [sub["id"]]
    assert client.get("/api/subscriptions/status/BOGUS").status_code == 400

    updated = client.put(f"/api/subscriptions/{sub['id']}/status", json={"status": "EXPIRED"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "EXPIRED"
    assert client.put(f"/api/subscriptions/{sub['id']}/status", json={"status": "nope"}).status_code == 400
