"""
Exception taxonomy and the FastAPI handlers that turn it into JSON responses.

Every error body has the shape ``{"status", "timestamp", "error"}``;
request validation failures add an ``errors`` map of field -> message.
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainValidationError(ValueError):
    """Input rejected by a service rule (bad amount, missing field, ...)."""


class ConflictError(DomainValidationError):
    """Unique value already taken (username, Square subscription id)."""


class NotFoundError(LookupError):
    """Requested entity does not exist."""

    def __init__(self, entity: str, key):
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class InvalidStateTransition(Exception):
    """An action was attempted from a state that does not allow it."""

    def __init__(self, entity: str, action: str, current: str, allowed):
        required = ", ".join(sorted(allowed))
        super().__init__(
            f"Cannot {action} {entity} in status {current}; requires one of: {required}"
        )
        self.entity = entity
        self.action = action
        self.current = current
        self.allowed = frozenset(allowed)


class UpstreamServiceError(Exception):
    """A managed service could not be reached or answered with an error."""


class SquareConfigError(RuntimeError):
    """Square credentials or location are not configured."""


class SquareAPIError(Exception):
    """Non-success answer (or transport failure) from the Square API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        category: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.category = category

    def to_http_status(self) -> int:
        """Map the upstream failure onto the status returned to our caller."""
        if self.status_code is not None and 400 <= self.status_code <= 599:
            if self.status_code == 404 and self.category == "INVALID_REQUEST_ERROR":
                return 400
            return self.status_code

        category = (self.category or "").upper()
        if category == "INVALID_REQUEST_ERROR":
            return 400
        if category in ("PAYMENT_METHOD_ERROR", "CARD_ERROR"):
            return 402
        if category in ("RATE_LIMIT_ERROR", "RATE_LIMITED_ERROR"):
            return 429
        if category == "AUTHENTICATION_ERROR":
            return 401
        if category == "INVALID_STATE_ERROR":
            return 409
        return 502


def error_body(status_code: int, message: str, errors: Optional[Dict[str, str]] = None) -> dict:
    body = {
        "status": status_code,
        "timestamp": datetime.utcnow().isoformat(),
        "error": message,
    }
    if errors is not None:
        body["errors"] = errors
    return body


def _json(status_code: int, message: str, errors: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(status_code, message, errors))


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error mapping to the application."""

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors: Dict[str, str] = {}
        for err in exc.errors():
            missing_body = err.get("type") == "missing" and tuple(err.get("loc", ())) == ("body",)
            if err.get("type") == "json_invalid" or missing_body:
                return _json(status.HTTP_400_BAD_REQUEST, "Request body is missing or malformed")
            errors.setdefault(_field_name(err.get("loc", ())), err.get("msg", "invalid value"))
        return _json(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        response = _json(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(DomainValidationError)
    async def handle_domain_validation(request: Request, exc: DomainValidationError):
        return _json(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(InvalidStateTransition)
    async def handle_transition(request: Request, exc: InvalidStateTransition):
        return _json(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _json(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(SquareConfigError)
    async def handle_square_config(request: Request, exc: SquareConfigError):
        logger.error(f"Square not configured: {exc}")
        return _json(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))

    @app.exception_handler(SquareAPIError)
    async def handle_square_api(request: Request, exc: SquareAPIError):
        code = exc.to_http_status()
        logger.warning(
            f"Square call failed: status={exc.status_code} code={exc.code} "
            f"category={exc.category} -> {code}"
        )
        return _json(code, exc.message)

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream(request: Request, exc: UpstreamServiceError):
        logger.warning(str(exc))
        return _json(status.HTTP_502_BAD_GATEWAY, str(exc))

    @app.exception_handler(SQLAlchemyError)
    async def handle_database(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error")
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unexpected error")
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unexpected error")
