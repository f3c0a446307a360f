"""
Pydantic schemas for authentication and user management endpoints.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AuthRequest(BaseModel):
    """Request schema for login."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "username": "admin",
                "password": "changeit"
            }
        }


class UserResponse(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    active: bool
    permissions: List[str]
    created_at: datetime
    last_login: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            active=user.active,
            permissions=user.permission_codes(),
            created_at=user.created_at,
            last_login=user.last_login,
        )


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    email: Optional[str] = None
    full_name: Optional[str] = None
    permissions: Optional[List[str]] = Field(None, description="Permission names; defaults to VIEW_SUBSCRIPTIONS")

    class Config:
        json_schema_extra = {
            "example": {
                "username": "jdoe",
                "password": "secret123",
                "email": "jdoe@example.com",
                "full_name": "Jane Doe",
                "permissions": ["VIEW_SUBSCRIPTIONS", "REQUEST_REFUNDS"]
            }
        }


class UpdateUserRequest(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    permissions: Optional[List[str]] = None


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=6)


class PermissionResponse(BaseModel):
    name: str
    code: str
    description: str
