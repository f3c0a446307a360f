import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ✅ Import All API Routes
from app.api.routes import (
    auth,
    admin_users,
    health,
    ingest,
    payments,
    plans,
    refunds,
    services,
    subscriptions,
)
from app.core.config import Settings, get_settings
from app.core.errors import register_exception_handlers
from app.core.hmac_guard import HmacSignatureMiddleware
from app.core.logging_config import setup_logging
from app.core.rate_limit import RateLimitMiddleware
from app.db.init_db import init_db

logger = logging.getLogger(__name__)


def create_app(settings: Settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        init_db(settings)
        logger.info("Payments API started")
        yield

    app = FastAPI(title="SimpleTix Payments API", lifespan=lifespan)

    # ============================================
    # ✅ MIDDLEWARE (last added runs first)
    # ============================================

    app.add_middleware(
        HmacSignatureMiddleware,
        secret=settings.hmac_secret,
        enabled=settings.hmac_enabled,
        path_prefix="/ingest",
    )
    app.add_middleware(RateLimitMiddleware, permits=settings.rate_limit_permits)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-User-Id", "X-Signature"],
    )

    register_exception_handlers(app)

    # ============================================
    # ✅ REGISTER ALL ROUTERS
    # ============================================

    app.include_router(health.router)
    app.include_router(ingest.router)
    app.include_router(admin_users.router)
    app.include_router(services.router)
    app.include_router(auth.router)
    app.include_router(subscriptions.router)
    app.include_router(refunds.router)
    app.include_router(payments.router)
    app.include_router(plans.router)

    @app.get("/")
    def root():
        return {"status": "Payments API running"}

    return app


app = create_app(get_settings())
