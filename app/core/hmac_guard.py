"""
Request body signature check for the ingest endpoints.

Callers sign the raw request body with HMAC-SHA256 using the shared secret
and send the base64 digest in the ``X-Signature`` header.
"""
import base64
import hashlib
import hmac
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = b"x-signature"


def compute_signature(body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii", errors="replace"))


class HmacSignatureMiddleware:
    """
    ASGI middleware that rejects unsigned or badly signed requests under
    ``path_prefix``.

    The body is read once, verified, then replayed unchanged to the
    downstream app.
    """

    def __init__(self, app, secret: Optional[str], enabled: bool = True, path_prefix: str = "/ingest"):
        self.app = app
        self.secret = secret
        self.enabled = enabled
        self.path_prefix = path_prefix

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self.enabled or not scope.get("path", "").startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        if not self.secret:
            logger.error("HMAC verification enabled but no secret configured")
            await _respond(send, 500, "Signature secret not configured")
            return

        signature = None
        for name, value in scope.get("headers", []):
            if name.lower() == SIGNATURE_HEADER:
                signature = value.decode("latin-1")
                break
        if not signature:
            await _respond(send, 401, "Missing X-Signature header")
            return

        body = b""
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            body += message.get("body", b"")
            more_body = message.get("more_body", False)

        if not verify_signature(body, signature, self.secret):
            logger.warning(f"Rejected request with invalid signature: {scope.get('path')}")
            await _respond(send, 401, "Invalid signature")
            return

        replayed = False

        async def replay():
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)


async def _respond(send, status_code: int, message: str) -> None:
    payload = json.dumps({"status": status_code, "error": message}).encode("utf-8")
    await send({
        "type": "http.response.start",
        "status": status_code,
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(payload)).encode("ascii")),
        ],
    })
    await send({"type": "http.response.body", "body": payload})
