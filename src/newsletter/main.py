"""
Newsletter subscription service
FastAPI application exposing the double opt-in subscription flow
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from slowapi.errors import RateLimitExceeded as GlobalRateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .context import AppContext, build_context
from .middleware.rate_limiter import create_limiter, rate_limit_handler
from .middleware.security_headers import SecurityHeadersMiddleware
from .routers import health, newsletter
from .utils.errors import error_handler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to the environment-derived settings
        context: Pre-built collaborators; when omitted the lifespan builds
            them from settings and closes them on shutdown
    """
    settings = settings or (context.settings if context else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_context = context is None
        app.state.context = context or build_context(settings)
        logger.info("Newsletter service started")
        try:
            yield
        finally:
            if owns_context:
                await app.state.context.close()
            logger.info("Newsletter service stopped")

    app = FastAPI(
        title="Newsletter Subscription Service",
        description="Double opt-in newsletter subscriptions with signed verification links.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.limiter = create_limiter(settings)
    app.add_exception_handler(GlobalRateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(HTTPException, error_handler)
    app.add_exception_handler(StarletteHTTPException, error_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        environment=settings.environment,
        https_enabled=settings.https_enabled,
    )

    app.include_router(newsletter.router)
    app.include_router(health.router)

    return app


app = create_app()
