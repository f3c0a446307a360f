"""
Integration tests for /api/auth: login, token use and user management.
"""
from app.db.models.user import Permission
from app.services import user_service


def _seed_user(db, username="operator", password="secret123", permissions=None):
    return user_service.create_user(
        db, username=username, password=password, email=f"{username}@example.com", permissions=permissions
    )


def test_login_returns_token_and_user(client, db):
    _seed_user(db, permissions=Permission.VIEW_SUBSCRIPTIONS | Permission.APPROVE_REFUNDS)

    response = client.post("/api/auth/login", json={"username": "operator", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == "operator"
    assert set(data["user"]["permissions"]) == {"VIEW_SUBSCRIPTIONS", "APPROVE_REFUNDS"}

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "operator"


def test_login_rejects_bad_password(client, db):
    _seed_user(db)
    response = client.post("/api/auth/login", json={"username": "operator", "password": "wrong"})
    assert response.status_code == 401


def test_login_rejects_disabled_user(client, db):
    user = _seed_user(db)
    assert client.post(f"/api/auth/users/{user.id}/disable").json()["active"] is False

    response = client.post("/api/auth/login", json={"username": "operator", "password": "secret123"})
    assert response.status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_permissions_catalogue(client):
    response = client.get("/api/auth/permissions")
    assert response.status_code == 200
    names = [p["name"] for p in response.json()]
    assert len(names) == 8
    assert "VIEW_SUBSCRIPTIONS" in names


def test_create_user_defaults_and_duplicates(client):
    created = client.post("/api/auth/users", json={"username": "viewer", "password": "secret123"})
    assert created.status_code == 201
    assert created.json()["permissions"] == ["VIEW_SUBSCRIPTIONS"]

    duplicate = client.post("/api/auth/users", json={"username": "viewer", "password": "secret123"})
    assert duplicate.status_code == 400


def test_grant_and_revoke_permission(client, db):
    user = _seed_user(db)

    granted = client.post(f"/api/auth/users/{user.id}/permissions/REQUEST_REFUNDS")
    assert "REQUEST_REFUNDS" in granted.json()["permissions"]

    revoked = client.delete(f"/api/auth/users/{user.id}/permissions/REQUEST_REFUNDS")
    assert "REQUEST_REFUNDS" not in revoked.json()["permissions"]

    assert client.post(f"/api/auth/users/{user.id}/permissions/NOT_A_PERMISSION").status_code == 400


def test_change_password(client, db):
    user = _seed_user(db)

    wrong = client.post(
        f"/api/auth/users/{user.id}/change-password",
        json={"old_password": "nope", "new_password": "another123"},
    )
    assert wrong.status_code == 400

    ok = client.post(
        f"/api/auth/users/{user.id}/change-password",
        json={"old_password": "secret123", "new_password": "another123"},
    )
    assert ok.status_code == 200
    login = client.post("/api/auth/login", json={"username": "operator", "password": "another123"})
    assert login.status_code == 200


def test_unknown_user_is_404(client):
    assert client.get("/api/auth/users/999").status_code == 404
