"""
donorhub application.

Builds the FastAPI app: the PostgreSQL pool and schema are set up in
the lifespan, domain errors are mapped by src.api.errors, and every
router is mounted under /api.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import get_image_host
from src.api.errors import register_exception_handlers
from src.api.routers import router as api_router
from src.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {"name": "auth", "description": "Email verification, registration, sessions and passwords"},
    {"name": "navigation", "description": "Route guard decisions for client paths"},
    {"name": "programs", "description": "Programs, donations and program images"},
    {"name": "users", "description": "User directory"},
]


def open_pool(settings: Settings) -> ConnectionPool:
    """Open the shared pool and bring the schema up to date."""
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    run_migrations(pool)
    return pool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Own the resources that outlive a request.

    On shutdown the image host client is closed only if a request ever
    created it.
    """
    settings = get_settings()
    logger.info("donorhub starting (email backend: %s)", settings.email_backend)
    app.state.pool = open_pool(settings)
    logger.info("Database ready")

    yield

    logger.info("donorhub shutting down")
    if get_image_host.cache_info().currsize:
        get_image_host().close()
    app.state.pool.close()


app = FastAPI(
    title="donorhub",
    description="Donation and volunteer tracker API - email-verified registration, "
    "role-based navigation, programs and donations",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api")


@app.get("/health", summary="Liveness with a database round trip")
def health_check(request: Request) -> dict[str, str]:
    with request.app.state.pool.connection() as conn:
        conn.execute("SELECT 1")
    return {"status": "healthy"}
