"""
In-flight request limiter.

A process-wide counting semaphore caps the number of requests being handled
at once. Requests that find no free permit are answered with 429 straight
away instead of queueing.
"""
import json
import logging
import threading

logger = logging.getLogger(__name__)


class RateLimitMiddleware:
    """ASGI middleware enforcing a maximum number of concurrent requests."""

    def __init__(self, app, permits: int = 500):
        self.app = app
        self.permits = max(1, permits)
        self._semaphore = threading.Semaphore(self.permits)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if not self._semaphore.acquire(blocking=False):
            logger.warning(f"Rate limit exceeded ({self.permits} in flight): {scope.get('path')}")
            await _reject(send)
            return

        try:
            await self.app(scope, receive, send)
        finally:
            self._semaphore.release()


async def _reject(send) -> None:
    body = json.dumps({"status": 429, "error": "Too many requests"}).encode("utf-8")
    await send({
        "type": "http.response.start",
        "status": 429,
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode("ascii")),
        ],
    })
    await send({"type": "http.response.body", "body": body})
