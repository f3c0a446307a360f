"""
Registry of services managed from the admin dashboard.

Each service exposes /api/health, /api/logs and /api/metrics on its base URL
and port; the registry calls them on demand.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, DomainValidationError, NotFoundError, UpstreamServiceError
from app.db.models.managed_service import ManagedService
from app.repositories import managed_service_repository

logger = logging.getLogger(__name__)

CHECK_TIMEOUT = httpx.Timeout(10.0, connect=5.0)
DEFAULT_LOG_LINES = 100


def get_http_client():
    """FastAPI dependency yielding the HTTP client used for health, logs and metrics calls."""
    client = httpx.Client(timeout=CHECK_TIMEOUT)
    try:
        yield client
    finally:
        client.close()


def _refresh_urls(service: ManagedService) -> None:
    base = service.full_url
    service.health_check_url = f"{base}/api/health"
    service.logs_url = f"{base}/api/logs"


def register_service(
    db: Session,
    service_name: str,
    service_url: str,
    service_port: int,
    description: Optional[str] = None,
) -> ManagedService:
    if not service_name or not service_url:
        raise DomainValidationError("service_name and service_url are required")
    if managed_service_repository.get_by_name(db, service_name):
        raise ConflictError(f"Service already registered: {service_name}")

    service = ManagedService(
        service_name=service_name,
        service_url=service_url.rstrip("/"),
        service_port=service_port,
        description=description,
        enabled=True,
        healthy=False,
    )
    _refresh_urls(service)
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info(f"Registered service {service_name} at {service.full_url}")
    return service


def list_services(db: Session) -> List[ManagedService]:
    return managed_service_repository.list_all(db)


def get_service(db: Session, service_id: int) -> ManagedService:
    service = managed_service_repository.get(db, service_id)
    if not service:
        raise NotFoundError("Service", service_id)
    return service


def get_service_by_name(db: Session, name: str) -> ManagedService:
    service = managed_service_repository.get_by_name(db, name)
    if not service:
        raise NotFoundError("Service", name)
    return service


def update_service(
    db: Session,
    service_id: int,
    service_name: Optional[str] = None,
    service_url: Optional[str] = None,
    service_port: Optional[int] = None,
    description: Optional[str] = None,
) -> ManagedService:
    service = get_service(db, service_id)
    if service_name and service_name != service.service_name:
        if managed_service_repository.get_by_name(db, service_name):
            raise ConflictError(f"Service already registered: {service_name}")
        service.service_name = service_name
    if service_url:
        service.service_url = service_url.rstrip("/")
    if service_port is not None:
        service.service_port = service_port
    if description is not None:
        service.description = description
    _refresh_urls(service)
    db.commit()
    db.refresh(service)
    return service


def set_enabled(db: Session, service_id: int, enabled: bool) -> ManagedService:
    service = get_service(db, service_id)
    service.enabled = enabled
    db.commit()
    db.refresh(service)
    logger.info(f"Service {service.service_name} {'enabled' if enabled else 'disabled'}")
    return service


def delete_service(db: Session, service_id: int) -> None:
    service = get_service(db, service_id)
    db.delete(service)
    db.commit()
    logger.info(f"Deleted service {service_id}")


def check_health(db: Session, client: httpx.Client, service_id: int) -> ManagedService:
    """GET the health URL; any 2xx marks the service healthy, anything else unhealthy."""
    service = get_service(db, service_id)
    try:
        response = client.get(service.health_check_url)
        service.healthy = response.is_success
    except httpx.HTTPError as e:
        logger.warning(f"Health check failed for {service.service_name}: {e}")
        service.healthy = False
    service.last_health_check = datetime.utcnow()
    db.commit()
    db.refresh(service)
    return service


def _fetch(client: httpx.Client, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    try:
        response = client.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise UpstreamServiceError(f"Request to {url} failed: {e}") from e
    try:
        return response.json()
    except ValueError:
        return response.text


def get_logs(db: Session, client: httpx.Client, service_id: int, lines: int = DEFAULT_LOG_LINES) -> Any:
    service = get_service(db, service_id)
    return _fetch(client, f"{service.full_url}/api/logs", params={"lines": lines})


def get_metrics(db: Session, client: httpx.Client, service_id: int) -> Any:
    service = get_service(db, service_id)
    return _fetch(client, f"{service.full_url}/api/metrics")
