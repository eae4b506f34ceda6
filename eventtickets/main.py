import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventtickets.api.router import api_router
from eventtickets.core.config import Settings, settings as default_settings
from eventtickets.core.errors import (
    ConstraintViolation,
    FulfillmentDataError,
    InboundEventError,
    NotFound,
    PaymentGatewayError,
    TicketingError,
    Unavailable,
)
from eventtickets.core.logging import configure_logging
from eventtickets.db.init_db import create_tables, seed_demo_data
from eventtickets.services.container import Services, build_services
from eventtickets.services.reminder_scheduler import reminder_loop

logger = logging.getLogger(__name__)

# most specific first
ERROR_STATUS: list[tuple[type[TicketingError], int]] = [
    (NotFound, 404),
    (ConstraintViolation, 409),
    (Unavailable, 503),
    (PaymentGatewayError, 502),
    (FulfillmentDataError, 400),
    (InboundEventError, 400),
]


def _run_migrations_if_needed(settings: Settings) -> None:
    """Apply Alembic migrations automatically in production if enabled.

    Controlled by env var AUTO_APPLY_MIGRATIONS (default: '1'). Safe to run repeatedly.
    """
    if settings.env.lower() != "prod":
        return
    if os.getenv("AUTO_APPLY_MIGRATIONS", "1") != "1":
        return
    from alembic import command
    from alembic.config import Config

    root = Path(__file__).resolve().parents[1]
    alembic_ini = root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found at %s, skipping auto-migrations", alembic_ini)
        return
    cfg = Config(str(alembic_ini))
    # script_location must resolve when launched from an arbitrary CWD
    script_location = root / "alembic"
    if script_location.exists():
        cfg.set_main_option("script_location", str(script_location))
    logger.info("applying alembic migrations -> head")
    try:
        command.upgrade(cfg, "head")
    except Exception:  # pragma: no cover
        # keep serving; migrations can be retried by hand
        logger.exception("migration failed")
        return
    logger.info("migrations applied")


def status_for(exc: TicketingError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


def create_app(services: Services | None = None) -> FastAPI:
    settings = services.settings if services is not None else default_settings
    configure_logging(settings)
    if services is None:
        services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _run_migrations_if_needed(settings)
        if services.engine is not None and services.sessions is not None \
                and settings.env.lower() in {"dev", "development"}:
            create_tables(services.engine)
            seed_demo_data(services.sessions)
        task = None
        if settings.reminders_enabled:
            task = asyncio.create_task(
                reminder_loop(services.orders, services.mailer, settings.reminder_lead_hours)
            )
        yield
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.services = services

    # Configurable CORS origins (CORS_ORIGINS env). If empty -> dev defaults.
    origins = settings.cors_origins
    logger.info("resolved CORS origins: %s", origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TicketingError)
    async def ticketing_error_handler(request: Request, exc: TicketingError):
        code = status_for(exc)
        if code >= 500:
            logger.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
        return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})

    app.include_router(api_router)
    return app


app = create_app()
