"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main

Serves the JSON API under /api plus a /health probe.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.admin.events import publish, start_event_system, stop_event_system, subscribe
from src.admin.routes import router as admin_router
from src.auth.routes import router as auth_router
from src.clientes.routes import router as clientes_router
from src.config import settings
from src.db.engine import db_lifespan, ping
from src.errors import register_error_handlers
from src.schemas.events import EventType
from src.admin.audit import audit_on_event
from src.solicitudes.routes import router as solicitudes_router

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Database, then event bus with the audit subscriber; torn down in reverse."""
    logger.info("Starting %s API (env=%s)", settings.branding.company_name, settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        subscribe(audit_on_event)
        await start_event_system()
        await publish(EventType.SYSTEM_STARTUP, actor_id="system", actor_role="system", source_module="main")

        try:
            yield
        finally:
            logger.info("Shutting down...")
            await publish(EventType.SYSTEM_SHUTDOWN, actor_id="system", actor_role="system", source_module="main")
            await stop_event_system()

    logger.info("Shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────


def create_app() -> FastAPI:
    """Build the application: CORS, error handlers and the /api routers."""
    application = FastAPI(
        title="Solicitudes de Crédito API",
        description=f"Credit-line applications for {settings.branding.company_name}",
        version="1.0.0",
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(application)

    api = APIRouter(prefix="/api")
    for router in (auth_router, clientes_router, solicitudes_router, admin_router):
        api.include_router(router)
    application.include_router(api)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Liveness plus database reachability."""
        database_up = await ping()
        return {
            "status": "ok" if database_up else "degraded",
            "database": "up" if database_up else "down",
            "environment": settings.environment,
            "company": settings.branding.company_name,
        }

    return application


app = create_app()


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
