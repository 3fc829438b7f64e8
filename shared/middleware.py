# shared/middleware.py
"""
Centralized middleware for recipehub services.
Provides consistent request validation, error handling, and security headers.

Every error body has the shape ``{"error": str, "message"?: str}``.
"""

import logging
import time
from typing import Any, Callable, Optional

from fastapi import HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

MAX_REQUEST_SIZE = 10 * 1024 * 1024  # 10MB
NO_STORE = "no-store, no-cache, must-revalidate"


def error_response(
    status_code: int, error: str, message: Optional[str] = None, **extra: Any
) -> JSONResponse:
    """Create standardized error response"""
    content: dict[str, Any] = {"error": error}
    if message:
        content["message"] = message
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """
    Request validation middleware with:
    - Request size limits, overridable per endpoint
    - Content type validation
    - Request logging
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = MAX_REQUEST_SIZE,
        endpoint_limits: Optional[dict[str, int]] = None,
        allowed_content_types: Optional[list] = None,
        log_requests: bool = True,
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.endpoint_limits = endpoint_limits or {}
        self.allowed_content_types = allowed_content_types or [
            "application/json",
            "application/x-www-form-urlencoded",
            "multipart/form-data",
            "text/plain",
        ]
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        if self._should_skip_validation(request.url.path):
            return await call_next(request)

        content_length = request.headers.get("content-length")
        limit = self._size_limit(request.url.path)
        if content_length and content_length.isdigit() and int(content_length) > limit:
            return error_response(
                413,
                f"Request body too large. Maximum size is {limit // (1024 * 1024)}MB",
            )

        if request.method in ["POST", "PUT", "PATCH", "DELETE"]:
            content_type = request.headers.get("content-type", "").split(";")[0].strip()
            if content_type and content_type not in self.allowed_content_types:
                return error_response(415, f"Unsupported content type: {content_type}")

        response = await call_next(request)

        duration_ms = int((time.time() - start_time) * 1000)
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        if self.log_requests:
            client_ip = request.client.host if request.client else "unknown"
            if response.status_code >= 400:
                logger.error(
                    f"{request.method} {request.url.path} - {response.status_code} "
                    f"({duration_ms}ms) from {client_ip}"
                )
                if request.query_params:
                    logger.error(f"   Query params: {dict(request.query_params)}")
                safe_headers = {
                    k: v
                    for k, v in request.headers.items()
                    if k.lower() not in ["authorization", "cookie", "x-api-key"]
                }
                if safe_headers:
                    logger.error(f"   Headers: {safe_headers}")
            else:
                logger.info(
                    f"{request.method} {request.url.path} - {response.status_code} - {duration_ms}ms"
                )

        return response

    def _size_limit(self, path: str) -> int:
        for endpoint_pattern, endpoint_limit in self.endpoint_limits.items():
            if endpoint_pattern in path:
                return endpoint_limit
        return self.max_request_size

    def _should_skip_validation(self, path: str) -> bool:
        """Skip validation for certain paths"""
        skip_paths = ["/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"]
        return any(path.startswith(skip_path) for skip_path in skip_paths)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses
    """

    def __init__(self, app: ASGIApp, service_name: str = "recipehub"):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Service-Name"] = self.service_name

        if response.status_code >= 400:
            response.headers["Cache-Control"] = NO_STORE

        return response


def create_standard_error_handlers():
    """
    Create standardized error handlers for FastAPI apps
    """

    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Missing or malformed parameters are reported as 400"""
        errors = exc.errors()
        message = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
            for err in errors
        )
        return error_response(400, "Invalid request", message or None)

    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions"""
        detail = exc.detail
        if isinstance(detail, dict):
            return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)
        response = error_response(exc.status_code, str(detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions"""
        logger.error(
            f"UNHANDLED EXCEPTION {request.method} {request.url.path}: {exc}", exc_info=True
        )
        return error_response(
            500,
            "Internal server error",
            str(exc) or type(exc).__name__,
            path=request.url.path,
        )

    return {
        "validation_exception_handler": validation_exception_handler,
        "http_exception_handler": http_exception_handler,
        "general_exception_handler": general_exception_handler,
    }


def add_middleware_to_app(
    app,
    service_name: str,
    max_request_size: int = MAX_REQUEST_SIZE,
    endpoint_limits: Optional[dict[str, int]] = None,
    log_requests: bool = True,
):
    """
    Add all standard middleware to a FastAPI app

    Args:
        app: FastAPI application instance
        service_name: Name of the service (for headers and logging)
        max_request_size: Default maximum request size in bytes
        endpoint_limits: Dict of endpoint path patterns to size limits
        log_requests: Whether to log requests
    """
    # Order matters: last added is executed first
    app.add_middleware(SecurityHeadersMiddleware, service_name=service_name)
    app.add_middleware(
        RequestValidationMiddleware,
        max_request_size=max_request_size,
        endpoint_limits=endpoint_limits,
        log_requests=log_requests,
    )

    handlers = create_standard_error_handlers()
    app.add_exception_handler(RequestValidationError, handlers["validation_exception_handler"])
    app.add_exception_handler(StarletteHTTPException, handlers["http_exception_handler"])
    app.add_exception_handler(HTTPException, handlers["http_exception_handler"])
    app.add_exception_handler(Exception, handlers["general_exception_handler"])
