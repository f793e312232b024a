"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.exceptions import (
    CollaboratorError,
    EmailAlreadyClaimed,
    LogoRejected,
    MemberNotFound,
    RegistrantRemovalError,
    RegistrationError,
    SessionNotFound,
    VerificationFailed,
)

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Membership Registration API v1 - Multi-step wizard, email verification and payment",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Closes connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store pool in app state for dependency injection
    app.state.pool = pool

    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; checkout and invoicing are disabled")

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="membership-registration",
    description="Membership Registration API - Guides applicants through a six-step wizard "
    "ending in hosted checkout or invoice-on-account",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


# Checked in order; the first isinstance match wins
_ERROR_STATUS: list[tuple[type[RegistrationError], int]] = [
    (SessionNotFound, status.HTTP_404_NOT_FOUND),
    (MemberNotFound, status.HTTP_404_NOT_FOUND),
    (RegistrantRemovalError, status.HTTP_409_CONFLICT),
    (EmailAlreadyClaimed, status.HTTP_409_CONFLICT),
    (LogoRejected, status.HTTP_400_BAD_REQUEST),
    (VerificationFailed, status.HTTP_400_BAD_REQUEST),
    (CollaboratorError, status.HTTP_502_BAD_GATEWAY),
]

_NOT_FOUND_DETAIL = {
    SessionNotFound: "Registration session not found",
    MemberNotFound: "Team member not found",
}


def status_for(exc: RegistrationError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    """Translate domain errors into {"detail": ...} responses."""
    detail = _NOT_FOUND_DETAIL.get(type(exc)) or str(exc) or "Registration failed"
    return JSONResponse(status_code=status_for(exc), content={"detail": detail})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Unknown field, bucket or step names from the transition functions."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)}
    )


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
