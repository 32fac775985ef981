"""Catalog API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, exception handlers and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_api.api import (
    attributes_router,
    categories_router,
    health_router,
    options_router,
    package_options_router,
    product_attributes_router,
    products_router,
    variants_router,
)
from catalog_api.api.errors import setup_exception_handlers
from catalog_api.api.middleware import setup_middleware
from catalog_api.application.facade import get_catalog_facade
from catalog_api.infrastructure.config import settings
from catalog_api.infrastructure.database import engine
from catalog_api.infrastructure.logging_config import configure_logging

logger = structlog.get_logger()

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    configure_logging()
    logger.info(
        "Starting Catalog API",
        version=settings.api_version,
        debug=settings.debug,
    )
    get_catalog_facade()

    yield

    # Shutdown
    logger.info("Shutting down Catalog API")
    await engine.dispose()


app = FastAPI(
    title="Catalog API",
    description="Multi-tenant product catalog backend",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, caller resolution)
setup_middleware(app)

# Setup exception handlers (error envelope)
setup_exception_handlers(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(categories_router, prefix=API_PREFIX)
app.include_router(attributes_router, prefix=API_PREFIX)
app.include_router(products_router, prefix=API_PREFIX)
app.include_router(variants_router, prefix=API_PREFIX)
app.include_router(options_router, prefix=API_PREFIX)
app.include_router(product_attributes_router, prefix=API_PREFIX)
app.include_router(package_options_router, prefix=API_PREFIX)
