"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from gophermart.api.error_handlers import register_error_handlers
from gophermart.api.v1 import health_router
from gophermart.api.v1 import router as api_router
from gophermart.config import settings
from gophermart.db import create_schema, dispose_engine
from gophermart.logging import setup_logging

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(
        "Starting Gophermart API",
        run_address=settings.run_address,
        accrual_system=settings.accrual_system_address,
        debug=settings.debug,
    )

    if settings.auto_create_schema:
        await create_schema()
        logger.info("Database schema ensured")

    yield

    logger.info("Shutting down Gophermart API")
    await dispose_engine()
    logger.info("Database connections disposed")


app = FastAPI(
    title="Gophermart API",
    description="Loyalty points ledger for the Gophermart store",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)

register_error_handlers(app)

app.include_router(health_router, tags=["health"])
app.include_router(api_router, prefix="/api")
