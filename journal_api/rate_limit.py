"""
Rate limiting for the Reflective Journal API.

Uses SlowAPI; Redis backs the counters when REDIS_URL is set so limits hold
across workers, otherwise counters live in process memory.
Protects the Gemini and Stripe calls from bursts.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import settings
from .error_handlers import ErrorCode, format_error_response
from .logging_config import get_logger

logger = get_logger(__name__)


def get_user_id_or_ip(request: Request) -> str:
    """
    Rate limit key function - uses user_id if authenticated, otherwise IP address.
    """
    # Set by get_current_user_id before the endpoint body runs
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_id_or_ip,
    storage_uri=settings.REDIS_URL or "memory://",
    default_limits=[],  # per-endpoint limits only
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=True,  # X-RateLimit-* headers
)


if settings.ENVIRONMENT == "development":
    logger.info("Rate limiting: DEVELOPMENT mode")
else:
    logger.info(
        "Rate limiting enabled" if settings.RATE_LIMIT_ENABLED else "Rate limiting disabled",
        extra={"extra_data": {"storage": "redis" if settings.REDIS_URL else "memory"}}
    )


def log_rate_limit_hit(request: Request, limit: str):
    """Log when rate limits are hit - useful for detecting abuse patterns."""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "extra_data": {
                "path": request.url.path,
                "limit": limit,
                "key": get_user_id_or_ip(request),
                "user_agent": request.headers.get("user-agent"),
            }
        }
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log_rate_limit_hit(request, str(exc.detail))

    content = format_error_response(
        message="Too many requests. Please wait a moment and try again.",
        error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
        status_code=429,
        details={"limit": str(exc.detail)},
        request_id=getattr(request.state, "request_id", None),
    )
    response = JSONResponse(status_code=429, content=content)
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)
