"""
Pydantic schemas for the admin dashboard endpoints.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CreateAdminUserRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    role: Optional[str] = Field(None, description="Defaults to ROLE_OPERATOR")


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UpdateAdminUserRequest(BaseModel):
    username: Optional[str] = None
    role: Optional[str] = None
    active: Optional[bool] = None


class AdminUserResponse(BaseModel):
    id: int
    username: str
    role: str
    active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegisterServiceRequest(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=100)
    service_url: str = Field(..., min_length=1, description="Base URL without port, e.g. http://10.0.0.5")
    service_port: int = Field(..., ge=1, le=65535)
    description: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "service_name": "payment-service",
                "service_url": "http://localhost",
                "service_port": 8081,
                "description": "Payments backend"
            }
        }


class UpdateServiceRequest(BaseModel):
    service_name: Optional[str] = None
    service_url: Optional[str] = None
    service_port: Optional[int] = Field(None, ge=1, le=65535)
    description: Optional[str] = None


class ManagedServiceResponse(BaseModel):
    id: int
    service_name: str
    service_url: str
    service_port: int
    description: Optional[str] = None
    enabled: bool
    healthy: bool
    health_check_url: Optional[str] = None
    logs_url: Optional[str] = None
    last_health_check: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class HealthCheckResponse(BaseModel):
    service_name: str
    healthy: bool
    last_health_check: Optional[datetime] = None
