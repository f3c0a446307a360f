"""
Payment dashboard users and their permission sets.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import ConflictError, DomainValidationError, NotFoundError
from app.core.security import hash_password, verify_password
from app.db.models.user import User, Permission
from app.repositories import user_repository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _validate_password(password: Optional[str]) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise DomainValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def parse_permissions(names: Optional[Iterable[str]]) -> Permission:
    """Combine permission names (either case) into a flag set."""
    combined = Permission(0)
    for name in names or []:
        try:
            combined |= Permission[name.strip().upper()]
        except KeyError:
            raise DomainValidationError(f"Unknown permission: {name}")
    return combined


def get_user(db: Session, user_id: int) -> User:
    user = user_repository.get_user(db, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return user_repository.get_user_by_username(db, username)


def list_users(db: Session) -> List[User]:
    return user_repository.list_users(db)


def authenticate(db: Session, username: str, password: str) -> Optional[User]:
    """
    Check credentials and stamp ``last_login``.

    Returns:
        The user, or None for unknown users, inactive users and wrong passwords
    """
    user = user_repository.get_user_by_username(db, username)
    if not user:
        logger.info(f"Login failed for unknown user '{username}'")
        return None
    if not user.active:
        logger.info(f"Login refused for inactive user '{username}'")
        return None
    if not verify_password(password, user.password_hash):
        logger.info(f"Login failed for '{username}': bad password")
        return None

    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user


def create_user(
    db: Session,
    username: str,
    password: str,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    permissions: Optional[Permission] = None,
) -> User:
    if not username or not username.strip():
        raise DomainValidationError("Username is required")
    _validate_password(password)
    if user_repository.get_user_by_username(db, username.strip()):
        raise ConflictError(f"Username already exists: {username}")

    user = User(
        username=username.strip(),
        password_hash=hash_password(password),
        email=email,
        full_name=full_name,
        active=True,
    )
    user.permissions = permissions if permissions else Permission.VIEW_SUBSCRIPTIONS
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.username} with permissions {user.permission_codes()}")
    return user


def update_user(
    db: Session,
    user_id: int,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    permissions: Optional[Permission] = None,
) -> User:
    user = get_user(db, user_id)
    if email is not None:
        user.email = email
    if full_name is not None:
        user.full_name = full_name
    if permissions is not None:
        user.permissions = permissions
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user_id: int, old_password: str, new_password: str) -> User:
    user = get_user(db, user_id)
    if not verify_password(old_password, user.password_hash):
        raise DomainValidationError("Current password is incorrect")
    _validate_password(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    logger.info(f"Password changed for user {user.username}")
    return user


def reset_password(db: Session, user_id: int, new_password: str) -> User:
    user = get_user(db, user_id)
    _validate_password(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    logger.info(f"Password reset for user {user.username}")
    return user


def add_permission(db: Session, user_id: int, permission: Permission) -> User:
    user = get_user(db, user_id)
    user.permissions = user.permissions | permission
    db.commit()
    db.refresh(user)
    return user


def remove_permission(db: Session, user_id: int, permission: Permission) -> User:
    user = get_user(db, user_id)
    user.permissions = user.permissions & ~permission
    db.commit()
    db.refresh(user)
    return user


def has_permission(user: User, permission: Permission) -> bool:
    return permission in user.permissions


def set_active(db: Session, user_id: int, active: bool) -> User:
    user = get_user(db, user_id)
    user.active = active
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.username} {'enabled' if active else 'disabled'}")
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    db.delete(user)
    db.commit()
    logger.info(f"Deleted user {user_id}")


def ensure_default_admin(db: Session, settings: Settings) -> Optional[User]:
    """Seed the administrator account on first start. Returns it if created."""
    if user_repository.get_user_by_username(db, settings.admin_user):
        return None
    admin = create_user(
        db,
        username=settings.admin_user,
        password=settings.admin_pass,
        email="admin@example.com",
        full_name="System Administrator",
        permissions=Permission.all(),
    )
    logger.warning(f"Created default admin user '{admin.username}'; change its password")
    return admin
