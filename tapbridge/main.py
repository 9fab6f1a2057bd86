"""Main module of the FastAPI application.

This module sets up the FastAPI application, the shared Stripe client, and the
middleware to log incoming requests and unhandled exceptions.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from tapbridge.api.middleware import (
    AllowedOriginsCORSMiddleware,
    add_request_id,
    exception_logging_middleware,
    log_requests,
    tapbridge_exception_handler,
    validation_exception_handler,
)
from tapbridge.api.router import TrailingSlashRouter
from tapbridge.api.v1.api import api_router
from tapbridge.api.v1.endpoints import health
from tapbridge.core.config import settings
from tapbridge.core.exceptions import TapbridgeException
from tapbridge.core.logging import logger
from tapbridge.integrations.stripe_client import StripeClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Creates the Stripe client shared by all requests and, when enabled, the database
    tables.
    """
    if settings.has_weak_jwt_secret:
        logger.warning(
            "JWT_SECRET is shorter than 32 characters. "
            "Use a strong, randomly generated secret outside local development."
        )
    if not settings.oauth_enabled:
        logger.warning("STRIPE_CLIENT_ID is not set; Stripe Connect onboarding is disabled")

    app.state.stripe_client = StripeClient(
        settings.STRIPE_SECRET_KEY, api_version=settings.STRIPE_API_VERSION
    )

    if settings.RUN_DB_CREATE_ALL:
        from tapbridge.db.init_db import init_db
        from tapbridge.db.session import async_engine

        logger.info("Creating database tables...")
        await init_db(async_engine)

    yield


# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(api_router)

# Register middleware directly
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(TapbridgeException)(tapbridge_exception_handler)

app.add_middleware(AllowedOriginsCORSMiddleware, allowed_origins=settings.cors_origins)
