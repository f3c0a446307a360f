"""
Application settings.

Values are read from the environment once and passed explicitly to the
components that need them (Square client, middlewares, admin seeding).
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    # ✅ Database
    database_url: str = "sqlite:///./payments.db"
    run_migrations: bool = False

    # ✅ Security
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    admin_user: str = "admin"
    admin_pass: str = "changeit"

    # ✅ Square
    square_api_token: Optional[str] = None
    square_location_id: Optional[str] = None
    square_application_id: Optional[str] = None
    square_api_env: Optional[str] = None
    square_ach_enabled: bool = False
    square_api_version: str = "2025-10-16"

    # ✅ Ingest guards
    hmac_secret: Optional[str] = None
    hmac_enabled: bool = True
    rate_limit_permits: int = 500

    # ✅ Misc
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./payments.db"),
            run_migrations=_env_bool("RUN_MIGRATIONS", False),
            secret_key=os.getenv("SECRET_KEY", "change-me"),
            algorithm=os.getenv("ALGORITHM", "HS256"),
            access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60),
            admin_user=os.getenv("APP_ADMIN_USER", "admin"),
            admin_pass=os.getenv("APP_ADMIN_PASS", "changeit"),
            square_api_token=_env_str("SQUARE_API_TOKEN"),
            square_location_id=_env_str("SQUARE_LOCATION_ID"),
            square_application_id=_env_str("SQUARE_APPLICATION_ID"),
            square_api_env=_env_str("SQUARE_API_ENV"),
            square_ach_enabled=_env_bool("SQUARE_ACH_ENABLED", False),
            square_api_version=os.getenv("SQUARE_API_VERSION", "2025-10-16"),
            hmac_secret=_env_str("HMAC_SECRET"),
            hmac_enabled=_env_bool("HMAC_ENABLED", True),
            rate_limit_permits=_env_int("RATE_LIMIT_PERMITS", 500),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings, loaded on first use."""
    return Settings.from_env()
