"""API middleware for the catalog API.

Provides:
- Request ID correlation
- Caller resolution (bearer token or seller header) into a CallerScope
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware

from catalog_api.api.errors import domain_error_response
from catalog_api.domain.exceptions import (
    AuthenticationRequiredError,
    DomainError,
    InvalidSellerIdError,
    InvalidTokenError,
)
from catalog_api.domain.tenancy import CallerScope
from catalog_api.infrastructure.config import settings

logger = structlog.get_logger()


# ============================================================================
# Request ID Middleware
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for correlation.

    Generates or extracts a request ID and adds it to:
    - Request state for access in handlers
    - Response headers for client correlation
    - Log context for tracing
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round(duration_ms, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[self.HEADER_NAME] = request_id
        return response


# ============================================================================
# Caller Resolution
# ============================================================================


# Paths that don't require a caller
PUBLIC_PATHS = {
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
}


def parse_seller_id(raw: str | None) -> int | None:
    """Parse the seller header.

    Returns:
        The seller id, or None when the header is absent.

    Raises:
        InvalidSellerIdError: If present but empty, non-numeric or zero.
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit() or int(raw) == 0:
        raise InvalidSellerIdError()
    return int(raw)


def decode_token(token: str) -> dict:
    """Decode and verify a bearer token.

    Raises:
        InvalidTokenError: If the token is malformed, expired or unsigned.
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise InvalidTokenError() from exc


def resolve_caller(authorization: str | None, seller_header: str | None) -> CallerScope:
    """Resolve the caller scope from request headers.

    ADMIN tokens are unrestricted. SELLER tokens must carry a seller id
    claim. CUSTOMER tokens and anonymous callers act as PUBLIC and need
    the seller header.

    Raises:
        AuthenticationRequiredError: If neither token nor header is given.
        InvalidTokenError: If the token is invalid or lacks claims.
        InvalidSellerIdError: If the seller header is malformed.
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise InvalidTokenError("Authorization header must be 'Bearer <token>'")
        claims = decode_token(token.strip())
        role = str(claims.get("role_name") or "").upper()
        user_id = _int_claim(claims.get("user_id"))

        if role == "ADMIN":
            return CallerScope.admin(user_id=user_id)
        if role == "SELLER":
            seller_id = _int_claim(claims.get("seller_id"))
            if not seller_id:
                raise InvalidTokenError("Seller token is missing the seller id claim")
            return CallerScope.seller(seller_id, user_id=user_id)
        if role == "CUSTOMER":
            seller_id = parse_seller_id(seller_header)
            if seller_id is None:
                raise InvalidSellerIdError(
                    f"{settings.seller_id_header} header is required for customer requests"
                )
            return CallerScope.public(seller_id, user_id=user_id)
        raise InvalidTokenError("Token carries an unknown role")

    seller_id = parse_seller_id(seller_header)
    if seller_id is None:
        raise AuthenticationRequiredError()
    return CallerScope.public(seller_id)


def _int_claim(value) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError() from exc


class CallerScopeMiddleware(BaseHTTPMiddleware):
    """Middleware resolving the caller for protected endpoints.

    Stores the resolved ``CallerScope`` in ``request.state.caller``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path.rstrip("/") or "/"
        if path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            return await call_next(request)
        if request.method == "OPTIONS":
            return await call_next(request)

        try:
            request.state.caller = resolve_caller(
                request.headers.get("Authorization"),
                request.headers.get(settings.seller_id_header),
            )
        except DomainError as exc:
            logger.warning(
                "Caller resolution failed",
                path=path,
                method=request.method,
                code=exc.code,
            )
            return domain_error_response(request, exc)

        structlog.contextvars.bind_contextvars(
            role=request.state.caller.role.value,
            seller_id=request.state.caller.seller_id,
        )
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("role", "seller_id")


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    # Caller resolution
    app.add_middleware(CallerScopeMiddleware)

    # Request ID correlation (outermost so every response carries it)
    app.add_middleware(RequestIdMiddleware)
