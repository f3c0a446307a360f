from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db
from app.schemas.ingest import LogEvent
from app.services import log_ingest_service

router = APIRouter(prefix="/ingest", tags=["Ingest"])


@router.post("/syslog", status_code=status.HTTP_202_ACCEPTED)
def ingest_syslog(event: LogEvent, db: Session = Depends(get_db)):
    """Store a signed syslog event. Signature and concurrency are checked by middleware."""
    entry = log_ingest_service.ingest(db, event)
    return {"id": entry.id, "status": "accepted"}
