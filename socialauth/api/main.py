import logging

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from socialauth.api.rate_limit import limiter
from socialauth.api.routes_oauth import router as oauth_router
from socialauth.core.config import BaseAppSettings, settings
from socialauth.core.errors import register_error_handlers
from socialauth.core.logger import init_logging
from socialauth.db.session import create_schema
from socialauth.services.oauth.events import EventEmitter, LoggingEventEmitter
from socialauth.services.oauth.factory import create_strategy_registry
from socialauth.services.oauth.registry import StrategyRegistry

logger = logging.getLogger(__name__)


async def _rate_limit_handler(request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"detail": "Too many requests"})


def create_app(
    app_settings: BaseAppSettings | None = None,
    registry: StrategyRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
    events: EventEmitter | None = None,
) -> FastAPI:
    """
    Build the social login application.

    The strategy registry is created here once and shared through
    ``app.state``; pass one in to control which providers are enabled.
    """
    app_settings = app_settings or settings
    init_logging(app_settings)

    is_production = app_settings.ENV.lower() == "prod"
    app = FastAPI(
        title=app_settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.state.settings = app_settings
    app.state.strategy_registry = registry or create_strategy_registry(app_settings, http_client=http_client)
    app.state.auth_events = events or LoggingEventEmitter()

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    app.add_middleware(
        SessionMiddleware,
        secret_key=app_settings.SESSION_SECRET,
        session_cookie=app_settings.SESSION_COOKIE_NAME,
        max_age=app_settings.SESSION_TTL,
        https_only=is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ALLOW_ORIGINS,
        allow_credentials=app_settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=app_settings.CORS_ALLOW_METHODS,
        allow_headers=app_settings.CORS_ALLOW_HEADERS,
    )
    register_error_handlers(app)
    app.include_router(oauth_router)

    if app_settings.DB_CREATE_ALL:
        create_schema()

    logger.info(
        "Social login ready with providers: %s",
        ", ".join(app.state.strategy_registry.providers()) or "none",
    )
    return app


app = create_app()
