# journal_api/error_handlers.py
"""
Centralized error handling with custom exception classes,
error codes, and FastAPI exception handlers.

Every error response shares one envelope:
    {"error": "<message>", "code": "ERR_xxxx", "details": {...}, ...}
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import traceback

from .logging_config import get_logger
from .config import settings

logger = get_logger(__name__)


# ============================================================================
# ERROR CODES - For client-side error handling
# ============================================================================

class ErrorCode:
    """Centralized error codes for consistent client-side handling"""

    # General errors (1xxx)
    INTERNAL_SERVER_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    UNAUTHORIZED = "ERR_1003"
    FORBIDDEN = "ERR_1004"
    RATE_LIMIT_EXCEEDED = "ERR_1005"
    CONFIGURATION_ERROR = "ERR_1006"
    METHOD_NOT_ALLOWED = "ERR_1007"

    # Database errors (2xxx)
    DATABASE_ERROR = "ERR_2000"
    INTEGRITY_ERROR = "ERR_2001"

    # Business logic errors (3xxx)
    PROMPT_QUOTA_EXCEEDED = "ERR_3000"
    CONTENT_TOO_SHORT = "ERR_3001"
    CHECKOUT_NOT_COMPLETED = "ERR_3002"

    # External service errors (4xxx)
    LLM_API_ERROR = "ERR_4000"
    LLM_QUOTA_EXCEEDED = "ERR_4001"
    LLM_RATE_LIMITED = "ERR_4002"
    PAYMENT_GATEWAY_ERROR = "ERR_4003"
    LLM_TIMEOUT = "ERR_4004"
    AUTH_PROVIDER_ERROR = "ERR_4005"


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppException):
    """Raised when a request is well-formed but semantically invalid"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class NotFoundException(AppException):
    """Raised when a resource is not found (or not owned by the caller)"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code=ErrorCode.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": identifier}
        )


class UnauthorizedException(AppException):
    """Raised when authentication fails"""

    def __init__(self, message: str = "Not authenticated", reason: Optional[str] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details={
                "reason": reason,
                "hint": "Sign out and back in to refresh your session"
            } if reason else {"hint": "Sign out and back in to refresh your session"}
        )


class ForbiddenException(AppException):
    """Raised when user doesn't have permission"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            error_code=ErrorCode.FORBIDDEN,
            status_code=status.HTTP_403_FORBIDDEN
        )


class ContentTooShortException(AppException):
    """Raised when journal text is too short to reflect on"""

    def __init__(self, length: int, minimum: int):
        super().__init__(
            message=f"Content must be at least {minimum} characters to generate a prompt",
            error_code=ErrorCode.CONTENT_TOO_SHORT,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"length": length, "minimum": minimum}
        )


class PromptQuotaExceededException(AppException):
    """Raised when a free-tier user has used all prompts for the month"""

    def __init__(self, used: int, limit: int):
        super().__init__(
            message="You've reached your monthly limit. Upgrade to Premium for unlimited prompts.",
            error_code=ErrorCode.PROMPT_QUOTA_EXCEEDED,
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            details={"prompts_used": used, "prompts_limit": limit}
        )


class CheckoutNotCompletedException(AppException):
    """Raised when a checkout session is not paid yet"""

    def __init__(self, session_id: str):
        super().__init__(
            message="Checkout has not been completed yet",
            error_code=ErrorCode.CHECKOUT_NOT_COMPLETED,
            status_code=status.HTTP_409_CONFLICT,
            details={"session_id": session_id}
        )


class ConfigurationException(AppException):
    """Raised when server-side credentials or identifiers are missing"""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"setting": setting} if setting else {}
        )


class DatabaseException(AppException):
    """Raised when database operations fail"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.DATABASE_ERROR,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"original_error": str(original_error)} if original_error else {}
        )


class ExternalServiceException(AppException):
    """Raised when external service calls fail"""

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: str = ErrorCode.INTERNAL_SERVER_ERROR,
        status_code: int = status.HTTP_502_BAD_GATEWAY
    ):
        super().__init__(
            message=f"{service_name} error: {message}",
            error_code=error_code,
            status_code=status_code,
            details={"service": service_name}
        )


class UpstreamQuotaException(AppException):
    """Raised when the LLM provider reports the account quota is exhausted"""

    def __init__(self, service_name: str = "Gemini"):
        super().__init__(
            message="The AI service quota has been exhausted. Please try again later.",
            error_code=ErrorCode.LLM_QUOTA_EXCEEDED,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"service": service_name}
        )


class UpstreamRateLimitException(AppException):
    """Raised when the LLM provider rate-limits the request"""

    def __init__(self, service_name: str = "Gemini"):
        super().__init__(
            message="The AI service is receiving too many requests. Please wait a moment and keep writing.",
            error_code=ErrorCode.LLM_RATE_LIMITED,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"service": service_name}
        )


class PaymentGatewayException(ExternalServiceException):
    """Raised when the payment processor rejects a request"""

    def __init__(self, message: str):
        super().__init__(
            service_name="Stripe",
            message=message,
            error_code=ErrorCode.PAYMENT_GATEWAY_ERROR,
            status_code=status.HTTP_502_BAD_GATEWAY
        )
        # Stripe messages are already descriptive
        self.message = message


# ============================================================================
# ERROR RESPONSE FORMATTER
# ============================================================================

def format_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Format error response in a consistent structure

    Returns:
        {
            "error": "Something went wrong",
            "code": "ERR_1000",
            "details": {...},
            "request_id": "abc123",
            "timestamp": "2024-01-01T00:00:00Z"
        }
    """
    response = {
        "error": message,
        "code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    if details:
        response["details"] = details

    if request_id:
        response["request_id"] = request_id

    return response


# ============================================================================
# FASTAPI EXCEPTION HANDLERS
# ============================================================================

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom AppException errors"""

    request_id = getattr(request.state, "request_id", None)

    # Client errors are expected traffic, server errors need a stack trace
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Application error: {exc.message}",
        extra={
            "request_id": request_id,
            "user_id": getattr(request.state, "user_id", None),
            "extra_data": {
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "path": request.url.path,
                "method": request.method,
                "details": exc.details
            }
        },
        exc_info=exc.status_code >= 500
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(
            error_code=exc.error_code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details,
            request_id=request_id
        )
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handler for malformed request bodies and parameters"""

    request_id = getattr(request.state, "request_id", None)

    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        "Validation error",
        extra={
            "request_id": request_id,
            "extra_data": {
                "path": request.url.path,
                "method": request.method,
                "errors": errors
            }
        }
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=format_error_response(
            error_code=ErrorCode.VALIDATION_ERROR,
            message="Malformed request body",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"validation_errors": errors},
            request_id=request_id
        )
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Handler for routing-level HTTP errors (unknown path, wrong method)"""

    request_id = getattr(request.state, "request_id", None)

    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        allowed = exc.headers.get("Allow") if exc.headers else None
        message = f"Only {allowed} allowed" if allowed else "Method not allowed"
        error_code = ErrorCode.METHOD_NOT_ALLOWED
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Not found"
        error_code = ErrorCode.NOT_FOUND
    else:
        message = str(exc.detail)
        error_code = ErrorCode.INTERNAL_SERVER_ERROR if exc.status_code >= 500 else ErrorCode.VALIDATION_ERROR

    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(
            error_code=error_code,
            message=message,
            status_code=exc.status_code,
            request_id=request_id
        ),
        headers=exc.headers
    )


async def sqlalchemy_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handler for SQLAlchemy database errors"""

    request_id = getattr(request.state, "request_id", None)

    if isinstance(exc, IntegrityError):
        error_code = ErrorCode.INTEGRITY_ERROR
        message = "Database integrity constraint violated"
        status_code = status.HTTP_409_CONFLICT
    else:
        error_code = ErrorCode.DATABASE_ERROR
        message = "Database operation failed"
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "request_id": request_id,
            "extra_data": {
                "error_type": type(exc).__name__,
                "path": request.url.path,
                "method": request.method
            }
        },
        exc_info=True
    )

    # Don't expose internal DB details in production
    if settings.ENVIRONMENT == "production":
        details = None
    else:
        details = {"database_error": str(exc)}

    return JSONResponse(
        status_code=status_code,
        content=format_error_response(
            error_code=error_code,
            message=message,
            status_code=status_code,
            details=details,
            request_id=request_id
        )
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Catch-all handler for unexpected errors"""

    request_id = getattr(request.state, "request_id", None)

    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "request_id": request_id,
            "extra_data": {
                "exception_type": type(exc).__name__,
                "path": request.url.path,
                "method": request.method,
            }
        },
        exc_info=True
    )

    if settings.ENVIRONMENT == "production":
        message = "An unexpected error occurred"
        details = None
    else:
        message = str(exc) or "An unexpected error occurred"
        details = {"traceback": traceback.format_exc().split("\n")}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=format_error_response(
            error_code=ErrorCode.INTERNAL_SERVER_ERROR,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            request_id=request_id
        )
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app

    Handlers are registered in order of specificity:
    1. Custom app exceptions (most specific)
    2. Validation and routing errors
    3. SQLAlchemy errors
    4. Generic exceptions (least specific)
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
