import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core.rate_limit import RateLimiter, make_rate_limit_middleware
from .core import errors
from .db.schema import init_db
from .routers import api, health, ui
from .services.rates.base import ForexProvider
from .services.rates.engine import utc_now
from .services.rates.providers import make_forex_provider


def create_app(
    settings_override: Settings | None = None,
    forex_provider: Optional[ForexProvider] = None,
    clock: Optional[Callable] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    forex_provider / clock: injected collaborators, built from settings when omitted.
    """
    settings = settings_override or get_settings()
    if settings_override is not None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(debug=settings.debug)

    # Ensure database schema (idempotent) so test-injected fresh DBs have tables
    try:
        init_db(settings.db_path)  # type: ignore[arg-type]
    except Exception:
        # Failing to init DB is fatal; re-raise after logging
        logging.getLogger("forexapi").exception("failed to initialise database on startup")
        raise

    app = FastAPI(title=settings.app_name, debug=settings.debug, version=settings.version)
    app.state.settings = settings
    app.state.forex_provider = forex_provider or make_forex_provider(settings)
    app.state.clock = clock or utc_now

    # Middleware: the last added runs first, so request ids wrap everything.
    if settings.rate_limit_enabled:
        app.state.rate_limiter = RateLimiter(settings.rate_limit_requests_per_minute)
        app.middleware("http")(make_rate_limit_middleware(app.state.rate_limiter))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
        max_age=settings.cors_max_age,
    )
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(errors.ConversionError, errors.conversion_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(api.router)
    app.include_router(ui.router)

    @app.get("/")
    async def root():
        return {"message": settings.app_name, "version": settings.version, "dashboard": "/ui"}

    logging.getLogger("forexapi").info(
        "app created (provider=%s, db=%s)", app.state.forex_provider.name, settings.db_path
    )
    return app
