"""
Integration tests for admin users and the managed service registry.
"""
import httpx
import pytest

from app.main import app
from app.services.service_registry_service import get_http_client


def _service_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/health":
        if request.url.host == "down.internal":
            return httpx.Response(503)
        return httpx.Response(200, json={"status": "UP"})
    if request.url.path == "/api/logs":
        return httpx.Response(200, json={"lines": int(request.url.params["lines"]), "entries": ["boot"]})
    if request.url.path == "/api/metrics":
        if request.url.host == "down.internal":
            return httpx.Response(500)
        return httpx.Response(200, json={"uptime": 42})
    return httpx.Response(404)


@pytest.fixture
def registry_client(client):
    http = httpx.Client(transport=httpx.MockTransport(_service_handler))
    app.dependency_overrides[get_http_client] = lambda: http
    yield client
    http.close()


def test_admin_user_crud(client):
    created = client.post("/api/admin/users/create", json={"username": "ops", "password": "pw"})
    assert created.status_code == 201
    admin = created.json()
    assert admin["role"] == "ROLE_OPERATOR"
    assert admin["active"] is True
    assert "password" not in admin and "password_hash" not in admin

    assert client.post("/api/admin/users/create", json={"username": "ops", "password": "pw"}).status_code == 400

    updated = client.put(f"/api/admin/users/{admin['id']}", json={"role": "ROLE_ADMIN", "active": False})
    assert updated.json()["role"] == "ROLE_ADMIN"
    assert updated.json()["active"] is False

    assert len(client.get("/api/admin/users").json()) == 1
    assert client.delete(f"/api/admin/users/{admin['id']}").status_code == 204
    assert client.get(f"/api/admin/users/{admin['id']}").status_code == 404


def test_register_service_builds_check_urls(client):
    response = client.post("/api/services/register", json={
        "service_name": "payment-service", "service_url": "http://pay.internal/", "service_port": 8081
    })
    assert response.status_code == 201
    service = response.json()
    assert service["health_check_url"] == "http://pay.internal:8081/api/health"
    assert service["logs_url"] == "http://pay.internal:8081/api/logs"
    assert service["enabled"] is True
    assert service["healthy"] is False

    by_name = client.get("/api/services/name/payment-service")
    assert by_name.json()["id"] == service["id"]

    duplicate = client.post("/api/services/register", json={
        "service_name": "payment-service", "service_url": "http://other", "service_port": 1
    })
    assert duplicate.status_code == 400


def test_update_service_recomputes_urls(client):
    service = client.post("/api/services/register", json={
        "service_name": "ingest", "service_url": "http://ingest.internal", "service_port": 8080
    }).json()

    updated = client.put(f"/api/services/{service['id']}", json={"service_port": 9090})
    assert updated.json()["health_check_url"] == "http://ingest.internal:9090/api/health"

    disabled = client.post(f"/api/services/{service['id']}/disable")
    assert disabled.json()["enabled"] is False


def test_health_logs_and_metrics(registry_client):
    up = registry_client.post("/api/services/register", json={
        "service_name": "up", "service_url": "http://up.internal", "service_port": 8081
    }).json()
    down = registry_client.post("/api/services/register", json={
        "service_name": "down", "service_url": "http://down.internal", "service_port": 8081
    }).json()

    healthy = registry_client.get(f"/api/services/{up['id']}/health").json()
    assert healthy["healthy"] is True
    assert healthy["last_health_check"] is not None
    assert registry_client.get(f"/api/services/{down['id']}/health").json()["healthy"] is False

    logs = registry_client.get(f"/api/services/{up['id']}/logs", params={"lines": 5})
    assert logs.json() == {"lines": 5, "entries": ["boot"]}

    assert registry_client.get(f"/api/services/{up['id']}/metrics").json() == {"uptime": 42}
    assert registry_client.get(f"/api/services/{down['id']}/metrics").status_code == 502


def test_unknown_service_is_404(client):
    assert client.get("/api/services/77").status_code == 404
    assert client.get("/api/services/name/missing").status_code == 404


def test_admin_login_stamps_last_login(client):
    created = client.post("/api/admin/users/create", json={"username": "ops", "password": "pw"}).json()
    assert created["last_login"] is None

    response = client.post("/api/admin/users/login", json={"username": "ops", "password": "pw"})
    assert response.status_code == 200
    assert response.json()["last_login"] is not None

    denied = client.post("/api/admin/users/login", json={"username": "ops", "password": "nope"})
    assert denied.status_code == 401
    assert denied.json()["error"] == "Invalid credentials"
