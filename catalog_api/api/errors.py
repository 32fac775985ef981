"""Error envelope rendering and exception handlers."""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_api.domain.exceptions import DomainError, ErrorKind

logger = structlog.get_logger()

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the standard error envelope."""
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content=jsonable_encoder(
            {
                "success": False,
                "message": message,
                "code": code,
                "details": details or {},
                "requestId": getattr(request.state, "request_id", None),
            }
        ),
    )


def domain_error_response(request: Request, exc: DomainError) -> JSONResponse:
    """Map a domain error to its HTTP status and envelope."""
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.UNAUTHENTICATED else None
    return error_response(request, status_code, exc.code, exc.message, exc.details, headers)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Handle domain errors raised by services."""
    logger.info(
        "Domain error",
        path=request.url.path,
        method=request.method,
        code=exc.code,
    )
    return domain_error_response(request, exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) in the envelope."""
    code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else "HTTP_ERROR"
    return error_response(request, exc.status_code, code, str(exc.detail), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI request validation failures as VALIDATION_ERROR."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed",
        {"errors": errors},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal error occurred",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the exception handlers on the application."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
