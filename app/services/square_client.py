"""
Thin HTTP client for the Square REST API.

Handles environment selection, auth headers, timeouts and the translation
of Square error payloads into ``SquareAPIError``. Higher level flows
(payments, invoices, payment import, subscriptions) build on ``request``.
"""
import logging
import uuid
from typing import Any, Dict, Iterator, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.errors import SquareAPIError, SquareConfigError
from app.core.logging_config import redact_token, sanitize_log_data

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://connect.squareupsandbox.com"
PRODUCTION_BASE_URL = "https://connect.squareup.com"

DEFAULT_TIMEOUT = httpx.Timeout(55.0, connect=15.0)

EXPIRED_NONCE_MESSAGE = "Your payment session expired. Reload the page and try again."
DEFAULT_FAILURE_MESSAGE = "Square payment failed. Please try again."
TIMEOUT_MESSAGE = "Square did not respond in time. Please try again."


def resolve_base_url(settings: Settings) -> str:
    """
    Pick sandbox or production.

    An explicit SQUARE_API_ENV wins; otherwise sandbox application ids
    ("sandbox-...") and sandbox access tokens ("EAAAE...") select sandbox.
    """
    env = (settings.square_api_env or "").strip().lower()
    if env in ("prod", "production"):
        return PRODUCTION_BASE_URL
    if env in ("sandbox", "dev", "development"):
        return SANDBOX_BASE_URL

    app_id = settings.square_application_id or ""
    token = settings.square_api_token or ""
    if app_id.startswith("sandbox-") or token.startswith("EAAAE"):
        return SANDBOX_BASE_URL
    return PRODUCTION_BASE_URL


def build_square_error(status_code: int, payload: Any) -> SquareAPIError:
    """Convert a Square error response body into a SquareAPIError."""
    code = category = detail = None
    if isinstance(payload, dict):
        errors = payload.get("errors") or []
        if errors and isinstance(errors[0], dict):
            first = errors[0]
            code = first.get("code")
            category = first.get("category")
            detail = first.get("detail")

    if code == "NOT_FOUND" and detail and "Card nonce not found" in detail:
        message = EXPIRED_NONCE_MESSAGE
    else:
        message = detail or DEFAULT_FAILURE_MESSAGE

    return SquareAPIError(message, status_code=status_code, code=code, category=category)


class SquareClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self.base_url = resolve_base_url(settings)
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=DEFAULT_TIMEOUT,
            transport=transport,
        )

    # ✅ Configuration checks

    @property
    def location_id(self) -> Optional[str]:
        return self.settings.square_location_id

    def require_token(self) -> str:
        if not self.settings.square_api_token:
            raise SquareConfigError("Square access token is not configured")
        return self.settings.square_api_token

    def require_location(self) -> str:
        if not self.settings.square_location_id:
            raise SquareConfigError("Square location id is not configured")
        return self.settings.square_location_id

    # ✅ Transport

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Call the Square API and return the decoded JSON body.

        Raises:
            SquareConfigError: No access token configured
            SquareAPIError: Non-2xx answer, timeout or transport failure
        """
        token = self.require_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Square-Version": self.settings.square_api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        logger.debug(
            f"Square {method} {path} (token {redact_token(token)}) "
            f"body={sanitize_log_data(json) if json else None}"
        )

        try:
            response = self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"Square {method} {path} timed out: {e}")
            raise SquareAPIError(TIMEOUT_MESSAGE) from e
        except httpx.HTTPError as e:
            logger.error(f"Square {method} {path} transport error: {e}")
            raise SquareAPIError(f"Could not reach Square: {e}") from e

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if response.is_success:
            return payload

        error = build_square_error(response.status_code, payload)
        logger.warning(
            f"Square {method} {path} failed: status={response.status_code} "
            f"code={error.code} category={error.category}"
        )
        raise error

    def close(self) -> None:
        self._http.close()

    # ✅ Subscriptions

    def get_subscription(self, square_subscription_id: str) -> Dict[str, Any]:
        body = self.request("GET", f"/v2/subscriptions/{square_subscription_id}")
        return body.get("subscription") or {}

    def cancel_subscription(self, square_subscription_id: str) -> Dict[str, Any]:
        body = self.request("POST", f"/v2/subscriptions/{square_subscription_id}/cancel")
        return body.get("subscription") or {}

    def pause_subscription(self, square_subscription_id: str) -> Dict[str, Any]:
        body = self.request("POST", f"/v2/subscriptions/{square_subscription_id}/pause", json={})
        return body.get("subscription") or {}

    def resume_subscription(self, square_subscription_id: str) -> Dict[str, Any]:
        body = self.request("POST", f"/v2/subscriptions/{square_subscription_id}/resume", json={})
        return body.get("subscription") or {}

    def iter_subscriptions(self) -> Iterator[Dict[str, Any]]:
        """Walk every subscription of the location, following cursors."""
        cursor = None
        while True:
            body: Dict[str, Any] = {"limit": 100}
            if self.location_id:
                body["query"] = {"filter": {"location_ids": [self.location_id]}}
            if cursor:
                body["cursor"] = cursor
            page = self.request("POST", "/v2/subscriptions/search", json=body)
            for subscription in page.get("subscriptions") or []:
                yield subscription
            cursor = page.get("cursor")
            if not cursor:
                break

    # ✅ Customers

    def get_customer(self, customer_id: str) -> Dict[str, Any]:
        body = self.request("GET", f"/v2/customers/{customer_id}")
        return body.get("customer") or {}

    def search_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        body = self.request("POST", "/v2/customers/search", json={
            "query": {"filter": {"email_address": {"exact": email}}},
            "limit": 1,
        })
        customers = body.get("customers") or []
        return customers[0] if customers else None

    def create_customer(self, customer: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in customer.items() if v is not None}
        data.setdefault("idempotency_key", str(uuid.uuid4()))
        body = self.request("POST", "/v2/customers", json=data)
        return body.get("customer") or {}


def get_square_client():
    """FastAPI dependency yielding a client bound to the current settings."""
    client = SquareClient(get_settings())
    try:
        yield client
    finally:
        client.close()
