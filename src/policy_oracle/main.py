"""
Policy Oracle Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures logging and exception handling, and provides a test-friendly
application factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Domain errors rendered as `{"error": ...}` with their own status codes
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import contextlib
import logging
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .config import settings
from .core.errors import (
    PolicyOracleError,
    policy_oracle_error_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from .db import async_engine

from .api import (
    chat_routes,
    conversation_routes,
    document_routes,
    health_routes,
    stats_routes,
)


logger = logging.getLogger("oracle.app")


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup validation and graceful shutdown.

    Secrets are read once at startup so misconfiguration fails before the
    first request is served.
    """
    logger.info("Starting policy-oracle")
    _ = settings.llm_api_key.get_secret_value()
    _ = settings.storage_service_key.get_secret_value()
    logger.info("Configuration validated successfully")

    yield

    logger.info("Shutting down policy-oracle")
    await async_engine.dispose()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    configure_logging()

    app = FastAPI(
        title="policy-oracle",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(PolicyOracleError, policy_oracle_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(document_routes.router)
    app.include_router(chat_routes.router)
    app.include_router(conversation_routes.router)
    app.include_router(stats_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
