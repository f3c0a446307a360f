from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db
from app.schemas.admin import (
    AdminLoginRequest,
    CreateAdminUserRequest,
    UpdateAdminUserRequest,
    AdminUserResponse,
)
from app.services import admin_user_service

router = APIRouter(prefix="/api/admin/users", tags=["Admin Users"])


@router.post("/create", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
def create_admin_user(body: CreateAdminUserRequest, db: Session = Depends(get_db)):
    return admin_user_service.create_admin_user(db, body.username, body.password, body.role)


@router.post("/login", response_model=AdminUserResponse)
def admin_login(body: AdminLoginRequest, db: Session = Depends(get_db)):
    admin = admin_user_service.authenticate_admin(db, body.username, body.password)
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return admin


@router.get("", response_model=List[AdminUserResponse])
def list_admin_users(db: Session = Depends(get_db)):
    return admin_user_service.list_admin_users(db)


@router.get("/{admin_id}", response_model=AdminUserResponse)
def get_admin_user(admin_id: int, db: Session = Depends(get_db)):
    return admin_user_service.get_admin_user(db, admin_id)


@router.put("/{admin_id}", response_model=AdminUserResponse)
def update_admin_user(admin_id: int, body: UpdateAdminUserRequest, db: Session = Depends(get_db)):
    return admin_user_service.update_admin_user(db, admin_id, body.username, body.role, body.active)


@router.delete("/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_admin_user(admin_id: int, db: Session = Depends(get_db)):
    admin_user_service.delete_admin_user(db, admin_id)
