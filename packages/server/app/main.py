"""
Prody API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.api import router as api_router
from app.api.auth import router as auth_router
from app.api.realtime import router as realtime_router
from app.core.auth import TokenIssuer
from app.core.config import Settings, get_settings
from app.core.database import create_engine, create_session_factory
from app.core.errors import DependencyFailure, register_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import SecurityHeadersMiddleware
from app.core.realtime import RealtimeBroadcaster
from app.core.redis import close_redis, create_redis
from app.services.google import GoogleIdentityVerifier
from app.services.mail import Mailer

log = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    *,
    mailer: Optional[Mailer] = None,
    identity_verifier: Optional[GoogleIdentityVerifier] = None,
    broadcaster: Optional[RealtimeBroadcaster] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every collaborator is built here and hung off ``app.state``; request
    dependencies hand them to the domain services.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Prody",
        description="Tasks, meetings and notifications for teams.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    engine = create_engine(settings)
    redis_client = create_redis(settings.redis_url) if broadcaster is None else None

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.tokens = TokenIssuer.from_settings(settings)
    app.state.mailer = mailer or Mailer.from_settings(settings)
    app.state.identity_verifier = identity_verifier or GoogleIdentityVerifier.from_settings(settings)
    app.state.redis = redis_client
    app.state.broadcaster = broadcaster or RealtimeBroadcaster(
        redis_client, queue_size=settings.realtime_queue_size
    )

    # Middleware (outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)

    # Auth routes (no credential required)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_router, prefix="/api")

    # Realtime
    app.include_router(realtime_router, tags=["Realtime"])

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: one round-trip to the database."""
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            log.warning("ready.database_unavailable", error=repr(exc))
            raise DependencyFailure("Database unavailable") from exc
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("prody.starting", port=settings.port, redis=bool(redis_client))
        await app.state.broadcaster.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("prody.shutting_down")
        await app.state.broadcaster.stop()
        await app.state.mailer.close()
        await app.state.identity_verifier.close()
        await close_redis(redis_client)
        await engine.dispose()

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
