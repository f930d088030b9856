# journal_api/middleware.py
"""
Custom middleware for request/response logging, security headers
and page-level route guarding.
"""

import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .auth.routing import RouteGuardMiddleware
from .logging_config import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 2.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs incoming requests and outgoing responses.
    Adds request_id for tracing and tracks response times.
    """

    # Paths to exclude from logging (health checks, etc.)
    EXCLUDED_PATHS = ["/health", "/docs", "/openapi.json", "/redoc"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        should_log = not any(
            request.url.path.startswith(path) for path in self.EXCLUDED_PATHS
        )

        if should_log:
            logger.info(
                f"Incoming request: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "extra_data": {
                        "method": request.method,
                        "path": request.url.path,
                        "client_host": request.client.host if request.client else None,
                        "user_agent": request.headers.get("user-agent"),
                    }
                }
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            # Log but let it propagate to exception handlers
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "user_id": getattr(request.state, "user_id", None),
                    "extra_data": {
                        "method": request.method,
                        "path": request.url.path,
                        "process_time_ms": int((time.time() - start_time) * 1000),
                        "exception": str(exc)
                    }
                },
                exc_info=True
            )
            raise

        process_time = time.time() - start_time
        process_time_ms = int(process_time * 1000)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time_ms)

        # Set by the auth dependency during the request
        user_id = getattr(request.state, "user_id", None)

        if should_log:
            if response.status_code >= 500:
                log_level = logger.error
            elif response.status_code >= 400:
                log_level = logger.warning
            else:
                log_level = logger.info

            log_level(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "extra_data": {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "process_time_ms": process_time_ms,
                    }
                }
            )

        # Prompt generation may legitimately take up to the LLM timeout
        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "extra_data": {
                        "process_time_ms": process_time_ms,
                        "threshold_exceeded": True
                    }
                }
            )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def register_middleware(app):
    """
    Register all middleware with FastAPI app.
    Order matters: last registered = outermost layer.
    """
    app.add_middleware(RouteGuardMiddleware)

    # Outside the guard so redirects get a request id too
    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(SecurityHeadersMiddleware)

    logger.info("Middleware registered successfully")
