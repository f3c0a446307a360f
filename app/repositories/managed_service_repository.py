from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.models.managed_service import ManagedService


def get(db: Session, service_id: int) -> Optional[ManagedService]:
    return db.query(ManagedService).filter(ManagedService.id == service_id).first()


def get_by_name(db: Session, name: str) -> Optional[ManagedService]:
    return db.query(ManagedService).filter(ManagedService.service_name == name).first()


def list_all(db: Session) -> List[ManagedService]:
    return db.query(ManagedService).order_by(ManagedService.service_name).all()
