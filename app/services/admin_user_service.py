import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, DomainValidationError, NotFoundError
from app.core.security import hash_password, verify_password
from app.db.models.admin_user import AdminUser
from app.repositories import user_repository

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "ROLE_OPERATOR"


def create_admin_user(db: Session, username: str, password: str, role: Optional[str] = None) -> AdminUser:
    if not username or not username.strip():
        raise DomainValidationError("Username is required")
    if not password:
        raise DomainValidationError("Password is required")
    if user_repository.get_admin_user_by_username(db, username.strip()):
        raise ConflictError(f"Username already exists: {username}")

    admin = AdminUser(
        username=username.strip(),
        password_hash=hash_password(password),
        role=role or DEFAULT_ROLE,
        active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"Created admin user {admin.username} ({admin.role})")
    return admin


def list_admin_users(db: Session) -> List[AdminUser]:
    return user_repository.list_admin_users(db)


def get_admin_user(db: Session, admin_id: int) -> AdminUser:
    admin = user_repository.get_admin_user(db, admin_id)
    if not admin:
        raise NotFoundError("Admin user", admin_id)
    return admin


def update_admin_user(
    db: Session,
    admin_id: int,
    username: Optional[str] = None,
    role: Optional[str] = None,
    active: Optional[bool] = None,
) -> AdminUser:
    admin = get_admin_user(db, admin_id)
    if username and username != admin.username:
        if user_repository.get_admin_user_by_username(db, username):
            raise ConflictError(f"Username already exists: {username}")
        admin.username = username
    if role:
        admin.role = role
    if active is not None:
        admin.active = active
    db.commit()
    db.refresh(admin)
    return admin


def delete_admin_user(db: Session, admin_id: int) -> None:
    admin = get_admin_user(db, admin_id)
    db.delete(admin)
    db.commit()
    logger.info(f"Deleted admin user {admin_id}")


def update_last_login(db: Session, username: str) -> None:
    admin = user_repository.get_admin_user_by_username(db, username)
    if admin:
        admin.last_login = datetime.utcnow()
        db.commit()


def validate_password(admin: AdminUser, raw_password: str) -> bool:
    return verify_password(raw_password, admin.password_hash)


def authenticate_admin(db: Session, username: str, raw_password: str) -> Optional[AdminUser]:
    """Dashboard sign-in; returns None for unknown, inactive or wrong-password users."""
    admin = user_repository.get_admin_user_by_username(db, username)
    if not admin or not admin.active or not validate_password(admin, raw_password):
        logger.info(f"Admin login failed for '{username}'")
        return None
    update_last_login(db, admin.username)
    db.refresh(admin)
    return admin
