import logging

from sqlalchemy.orm import Session

from app.db.models.system_log import SystemLog
from app.schemas.ingest import LogEvent

logger = logging.getLogger(__name__)


def ingest(db: Session, event: LogEvent) -> SystemLog:
    """Store one syslog event; ``received_at`` is stamped on insert."""
    entry = SystemLog(
        hostname=event.host,
        program=event.program,
        severity=event.severity,
        facility=event.facility,
        message=event.message,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.debug(f"Stored log event {entry.id} from {event.host}/{event.program}")
    return entry
