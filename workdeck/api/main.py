"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from workdeck.adapters.email import (
    BackgroundEmailSender,
    MailgunEmailSender,
    build_email_sender,
)
from workdeck.adapters.repository.postgres import (
    PostgresPendingRegistrationRepository,
    run_migrations,
)
from workdeck.api.errors import register_exception_handlers
from workdeck.api.v1 import router as v1_router
from workdeck.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Registration, verification, login, OAuth sign-in, and role selection",
    },
    {
        "name": "users",
        "description": "Authenticated profile updates",
    },
]


async def purge_pending_registrations(pool: ConnectionPool, settings: Settings) -> None:
    """
    Periodically delete pending registrations older than the configured max age.

    Runs until cancelled. Expiry is still enforced at verification time; this
    only keeps the table from growing.
    """
    repository = PostgresPendingRegistrationRepository(pool)
    while True:
        await asyncio.sleep(settings.purge_interval_seconds)
        try:
            purged = await asyncio.to_thread(
                repository.purge_expired, settings.pending_max_age_seconds
            )
        except Exception:
            logger.exception("Failed to purge pending registrations")
            continue
        if purged:
            logger.info("Purged %d expired pending registration(s)", purged)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations
    - Creates the background email sender
    - Starts the pending registration purge task
    - Tears all of them down on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    email_executor = ThreadPoolExecutor(
        max_workers=settings.email_workers, thread_name_prefix="email"
    )

    # Store process-scoped resources in app state for dependency injection
    app.state.pool = pool
    delivery_sender = build_email_sender(settings)
    app.state.email_sender = BackgroundEmailSender(delivery_sender, email_executor)

    purge_task = asyncio.create_task(purge_pending_registrations(pool, settings))

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    purge_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await purge_task
    email_executor.shutdown(wait=True)
    if isinstance(delivery_sender, MailgunEmailSender):
        delivery_sender.close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="workdeck",
    description="WorkDeck Auth API - Email-verified accounts with multiple roles per user",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    """
    pool = request.app.state.pool
    await asyncio.to_thread(_ping, pool)
    return {"status": "healthy"}


def _ping(pool: ConnectionPool) -> None:
    with pool.connection() as conn:
        conn.execute("SELECT 1")
