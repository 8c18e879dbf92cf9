"""
FinanceTracker FastAPI application entry point.

Layers: routes → RBAC dependencies → services → store → PostgreSQL
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import get_settings
from app.db.session import check_db_connection, engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STARTED_AT = datetime.now(timezone.utc)
_started_monotonic = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("FinanceTracker starting")
    try:
        try:
            check_db_connection()
            logger.info("Database connection verified")
            if "finance_tracker_test" in get_settings().database_url:
                logger.warning(
                    "App is connected to finance_tracker_test. "
                    "Set DATABASE_URL to finance_tracker_dev for development."
                )
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        if not get_settings().secret_key:
            logger.warning("SECRET_KEY is empty; access tokens are signed with an empty key")

        yield
    finally:
        logger.info("FinanceTracker shutting down")
        engine.dispose()
        logger.info("Database connection pool closed")


def _health_payload(status: str) -> dict:
    return {
        "status": status,
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _started_monotonic, 3),
        "started_at": STARTED_AT.isoformat(),
        "now": datetime.now(timezone.utc).isoformat(),
    }


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Mount API routes
    from app.api.auth import router as auth_router
    from app.api.workspaces import router as workspaces_router

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(workspaces_router, prefix="/api/workspaces", tags=["workspaces"])

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Unexpected storage failures: log with context, answer opaquely."""
        logger.error(
            "Storage failure on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    def health() -> dict:
        """Liveness check; does not touch the database."""
        return _health_payload("ok")

    @app.get("/ready")
    def ready() -> dict:
        """Readiness check. Confirms DB connectivity."""
        from sqlalchemy import text

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {**_health_payload("ready"), "database": "connected"}
        except Exception:
            logger.warning("Readiness check failed: database unreachable")
            return JSONResponse(
                status_code=503,
                content={**_health_payload("not_ready"), "database": "disconnected"},
            )

    return app


app = create_app()
