"""
Tests for the HMAC signature middleware and the in-flight rate limiter.
"""
import anyio
import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.core.hmac_guard import HmacSignatureMiddleware, compute_signature
from app.core.rate_limit import RateLimitMiddleware

SECRET = "shared-secret"


def _signed_app(secret=SECRET, enabled=True):
    app = FastAPI()
    app.state.calls = 0

    @app.post("/ingest/echo")
    async def echo(request: Request):
        app.state.calls += 1
        return {"body": (await request.body()).decode("utf-8")}

    @app.post("/open")
    async def open_route(request: Request):
        return {"body": (await request.body()).decode("utf-8")}

    app.add_middleware(HmacSignatureMiddleware, secret=secret, enabled=enabled, path_prefix="/ingest")
    return app


def test_valid_signature_passes_body_through_unchanged():
    app = _signed_app()
    body = b'{"host":"web-01","message":"hello"}'

    response = TestClient(app).post(
        "/ingest/echo", content=body, headers={"X-Signature": compute_signature(body, SECRET)}
    )

    assert response.status_code == 200
    assert response.json()["body"] == body.decode("utf-8")
    assert app.state.calls == 1


def test_wrong_signature_is_rejected_before_handler():
    app = _signed_app()
    body = b'{"host":"web-01"}'

    response = TestClient(app).post(
        "/ingest/echo", content=body, headers={"X-Signature": compute_signature(b"other", SECRET)}
    )

    assert response.status_code == 401
    assert app.state.calls == 0


def test_missing_signature_is_rejected():
    app = _signed_app()
    response = TestClient(app).post("/ingest/echo", content=b"{}")
    assert response.status_code == 401
    assert app.state.calls == 0


def test_missing_secret_is_server_error():
    app = _signed_app(secret=None)
    response = TestClient(app).post("/ingest/echo", content=b"{}", headers={"X-Signature": "abc"})
    assert response.status_code == 500
    assert app.state.calls == 0


def test_disabled_guard_and_other_paths_pass_through():
    disabled = _signed_app(enabled=False)
    assert TestClient(disabled).post("/ingest/echo", content=b"x").status_code == 200

    guarded = _signed_app()
    assert TestClient(guarded).post("/open", content=b"x").status_code == 200


@pytest.mark.anyio
async def test_rate_limiter_rejects_concurrent_request_and_recovers():
    entered = anyio.Event()
    release = anyio.Event()
    inner = FastAPI()

    @inner.get("/slow")
    async def slow():
        entered.set()
        await release.wait()
        return {"ok": True}

    limited = RateLimitMiddleware(inner, permits=1)
    transport = httpx.ASGITransport(app=limited)
    results = {}

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        async def first_request():
            results["first"] = await client.get("/slow")

        async with anyio.create_task_group() as tg:
            tg.start_soon(first_request)
            await entered.wait()
            second = await client.get("/slow")
            assert second.status_code == 429
            release.set()

        assert results["first"].status_code == 200

        third = await client.get("/slow")
        assert third.status_code == 200


def test_rate_limiter_permits_floor_is_one():
    assert RateLimitMiddleware(FastAPI(), permits=0).permits == 1
