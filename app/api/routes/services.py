"""
Managed service registry endpoints for the admin dashboard.
"""
from typing import Any, List

import httpx
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db
from app.schemas.admin import (
    RegisterServiceRequest,
    UpdateServiceRequest,
    ManagedServiceResponse,
    HealthCheckResponse,
)
from app.services import service_registry_service
from app.services.service_registry_service import get_http_client

router = APIRouter(prefix="/api/services", tags=["Services"])


@router.post("/register", response_model=ManagedServiceResponse, status_code=status.HTTP_201_CREATED)
def register_service(body: RegisterServiceRequest, db: Session = Depends(get_db)):
    return service_registry_service.register_service(
        db, body.service_name, body.service_url, body.service_port, body.description
    )


@router.get("", response_model=List[ManagedServiceResponse])
def list_services(db: Session = Depends(get_db)):
    return service_registry_service.list_services(db)


@router.get("/name/{service_name}", response_model=ManagedServiceResponse)
def get_service_by_name(service_name: str, db: Session = Depends(get_db)):
    return service_registry_service.get_service_by_name(db, service_name)


@router.get("/{service_id}", response_model=ManagedServiceResponse)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return service_registry_service.get_service(db, service_id)


@router.put("/{service_id}", response_model=ManagedServiceResponse)
def update_service(service_id: int, body: UpdateServiceRequest, db: Session = Depends(get_db)):
    return service_registry_service.update_service(
        db, service_id, body.service_name, body.service_url, body.service_port, body.description
    )


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(service_id: int, db: Session = Depends(get_db)):
    service_registry_service.delete_service(db, service_id)


@router.get("/{service_id}/health", response_model=HealthCheckResponse)
def check_health(
    service_id: int,
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
):
    service = service_registry_service.check_health(db, client, service_id)
    return {
        "service_name": service.service_name,
        "healthy": service.healthy,
        "last_health_check": service.last_health_check,
    }


@router.get("/{service_id}/logs")
def get_logs(
    service_id: int,
    lines: int = Query(service_registry_service.DEFAULT_LOG_LINES, ge=1, le=10000),
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
) -> Any:
    return service_registry_service.get_logs(db, client, service_id, lines)


@router.get("/{service_id}/metrics")
def get_metrics(
    service_id: int,
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
) -> Any:
    return service_registry_service.get_metrics(db, client, service_id)


@router.post("/{service_id}/enable", response_model=ManagedServiceResponse)
def enable_service(service_id: int, db: Session = Depends(get_db)):
    return service_registry_service.set_enabled(db, service_id, True)


@router.post("/{service_id}/disable", response_model=ManagedServiceResponse)
def disable_service(service_id: int, db: Session = Depends(get_db)):
    return service_registry_service.set_enabled(db, service_id, False)
