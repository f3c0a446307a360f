from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.models.user import User
from app.db.models.admin_user import AdminUser


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def get_admin_user(db: Session, admin_id: int) -> Optional[AdminUser]:
    return db.query(AdminUser).filter(AdminUser.id == admin_id).first()


def get_admin_user_by_username(db: Session, username: str) -> Optional[AdminUser]:
    return db.query(AdminUser).filter(AdminUser.username == username).first()


def list_admin_users(db: Session) -> List[AdminUser]:
    return db.query(AdminUser).order_by(AdminUser.id).all()
