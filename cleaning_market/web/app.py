"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from cleaning_market.booking.clock import Clock
from cleaning_market.booking.errors import BookingError
from cleaning_market.config import AppConfig, check_config, config_from_env, validate_config
from cleaning_market.models import init_db, make_session_factory

from .auth import router as auth_router
from .bookings import router as bookings_router
from .cleaners import router as cleaners_router
from .offers import router as offers_router

logger = logging.getLogger("cleaning_market.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: AppConfig = app.state.config
    init_db(app.state.session_factory.kw["bind"])

    if config.scheduler.enabled:
        from cleaning_market.scheduler import init_scheduler
        init_scheduler(app.state.session_factory, app.state.clock, config.scheduler.sweep_interval_minutes)

    yield

    if config.scheduler.enabled:
        from cleaning_market.scheduler import shutdown_scheduler
        shutdown_scheduler()


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


def create_app(
    config: AppConfig | None = None,
    session_factory: sessionmaker | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    config = config or config_from_env()
    check_config(config)
    for warning in validate_config(config):
        logger.warning("Config: %s", warning)

    app = FastAPI(title="Cleaning Market", lifespan=lifespan)
    app.state.config = config
    app.state.session_factory = session_factory or make_session_factory(
        config.database.url, echo=config.database.echo
    )
    app.state.clock = clock or Clock(config.marketplace.timezone)

    app.add_exception_handler(BookingError, booking_error_handler)

    app.include_router(auth_router)
    app.include_router(bookings_router)
    app.include_router(cleaners_router)
    app.include_router(offers_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/scheduler")
    def scheduler_info():
        """Diagnostic endpoint: shows sweep scheduler state."""
        from cleaning_market.scheduler import get_scheduler_info
        return get_scheduler_info()

    return app


app = create_app()
