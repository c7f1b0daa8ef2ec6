"""FastAPI application factory for Ticket-Engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ticket_engine.common.config import get_settings
from ticket_engine.common.exceptions import TicketEngineError
from ticket_engine.common.http import error_response
from ticket_engine.common.logging import setup_logging
from ticket_engine.common.schemas import HealthResponse

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from ticket_engine.deps import get_coordinator, get_db
        db = get_db()
        await db.init()
        await db.create_all()
        # Build the gateway and issuer now so misconfiguration fails at startup.
        coordinator = get_coordinator()
        logger.info(
            "Ticket-Engine %s started (%s, gateway=%s, wallet=%s)",
            settings.api_version, settings.environment,
            type(coordinator.lifecycle.gateway).__name__,
            type(coordinator.lifecycle.wallet_issuer).__name__,
        )
        yield
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TicketEngineError)
    async def ticket_engine_error(request: Request, exc: TicketEngineError):
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
        return error_response(exc)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Gate check-in is mounted first so /tickets/scan never reaches the
    # ticket routes.
    from ticket_engine.checkin.router import router as checkin_router
    from ticket_engine.scans.router import router as scans_router
    from ticket_engine.tickets.router import router as tickets_router
    from ticket_engine.payments.router import router as payments_router

    prefix = settings.api_prefix
    app.include_router(checkin_router, prefix=prefix, tags=["check-in"])
    app.include_router(scans_router, prefix=prefix, tags=["scans"])
    app.include_router(tickets_router, prefix=prefix, tags=["tickets"])
    app.include_router(payments_router, prefix=prefix, tags=["payments"])

    return app
