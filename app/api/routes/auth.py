from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, get_current_user
from app.core.config import Settings, get_settings
from app.core.security import create_access_token
from app.db.models.user import User, Permission
from app.schemas.auth import (
    AuthRequest,
    LoginResponse,
    UserResponse,
    CreateUserRequest,
    UpdateUserRequest,
    ChangePasswordRequest,
    ResetPasswordRequest,
    PermissionResponse,
)
from app.schemas.common import MessageResponse
from app.services import user_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# ✅ LOGIN
@router.post("/login", response_model=LoginResponse)
def login(body: AuthRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = user_service.authenticate(db, body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token({"sub": user.username}, settings)
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": UserResponse.from_user(user),
    }


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.from_user(user)


@router.get("/permissions", response_model=List[PermissionResponse])
def list_permissions():
    return [
        {"name": p.name, "code": p.code, "description": p.description}
        for p in Permission.members()
    ]


# ✅ USER MANAGEMENT
@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(body: CreateUserRequest, db: Session = Depends(get_db)):
    user = user_service.create_user(
        db,
        username=body.username,
        password=body.password,
        email=body.email,
        full_name=body.full_name,
        permissions=user_service.parse_permissions(body.permissions) if body.permissions else None,
    )
    return UserResponse.from_user(user)


@router.get("/users", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return [UserResponse.from_user(u) for u in user_service.list_users(db)]


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserResponse.from_user(user_service.get_user(db, user_id))


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(user_id: int, body: UpdateUserRequest, db: Session = Depends(get_db)):
    permissions = user_service.parse_permissions(body.permissions) if body.permissions is not None else None
    user = user_service.update_user(db, user_id, body.email, body.full_name, permissions)
    return UserResponse.from_user(user)


@router.post("/users/{user_id}/change-password", response_model=MessageResponse)
def change_password(user_id: int, body: ChangePasswordRequest, db: Session = Depends(get_db)):
    user_service.change_password(db, user_id, body.old_password, body.new_password)
    return {"message": "Password changed"}


@router.post("/users/{user_id}/reset-password", response_model=MessageResponse)
def reset_password(user_id: int, body: ResetPasswordRequest, db: Session = Depends(get_db)):
    user_service.reset_password(db, user_id, body.new_password)
    return {"message": "Password reset"}


@router.post("/users/{user_id}/permissions/{permission}", response_model=UserResponse)
def add_permission(user_id: int, permission: str, db: Session = Depends(get_db)):
    user = user_service.add_permission(db, user_id, user_service.parse_permissions([permission]))
    return UserResponse.from_user(user)


@router.delete("/users/{user_id}/permissions/{permission}", response_model=UserResponse)
def remove_permission(user_id: int, permission: str, db: Session = Depends(get_db)):
    user = user_service.remove_permission(db, user_id, user_service.parse_permissions([permission]))
    return UserResponse.from_user(user)


@router.post("/users/{user_id}/disable", response_model=UserResponse)
def disable_user(user_id: int, db: Session = Depends(get_db)):
    return UserResponse.from_user(user_service.set_active(db, user_id, False))


@router.post("/users/{user_id}/enable", response_model=UserResponse)
def enable_user(user_id: int, db: Session = Depends(get_db)):
    return UserResponse.from_user(user_service.set_active(db, user_id, True))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    user_service.delete_user(db, user_id)
