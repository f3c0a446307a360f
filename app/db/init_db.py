"""
Schema bootstrap and default data.
"""
import logging

from app.core.config import Settings
from app.db.base import Base
from app.db.session import engine, SessionLocal

logger = logging.getLogger(__name__)


def init_db(settings: Settings) -> None:
    """
    Create tables (or run Alembic when RUN_MIGRATIONS is set) and seed the
    default administrator.
    """
    # Registers every model on Base.metadata
    import app.db.models  # noqa: F401
    from app.services.user_service import ensure_default_admin

    if settings.run_migrations:
        from app.db.migrate import run_migrations
        run_migrations(settings)
    else:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")

    db = SessionLocal()
    try:
        ensure_default_admin(db, settings)
    finally:
        db.close()
