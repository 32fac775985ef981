"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from catalog_api.api.errors import domain_error_response
from catalog_api.domain.exceptions import StoreError
from catalog_api.infrastructure import database
from catalog_api.infrastructure.config import settings

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="catalog-api",
        version=settings.api_version,
    )


@router.get("/ready", response_model=None)
async def readiness_check(request: Request) -> dict[str, str] | JSONResponse:
    """Check the store is reachable.

    Returns:
        Readiness status, or 503 when ``SELECT 1`` fails.
    """
    try:
        await database.ping()
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Readiness check failed", error_type=type(exc).__name__)
        return domain_error_response(request, StoreError())
    return {"status": "ready"}
