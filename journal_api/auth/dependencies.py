from typing import Annotated, Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.concurrency import run_in_threadpool

from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
from clerk_backend_api.models import ClerkBaseError

from ..config import settings
from ..error_handlers import UnauthorizedException, ConfigurationException, ExternalServiceException, ErrorCode
from ..logging_config import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Authenticator:
    """Validates Clerk session tokens (bearer header or __session cookie)"""

    def __init__(self, secret_key: str, authorized_parties: Optional[list[str]] = None):
        self._clerk = Clerk(bearer_auth=secret_key)
        self._options = AuthenticateRequestOptions(
            authorized_parties=authorized_parties or None
        )

    def _authenticate_sync(self, request: Request) -> str:
        # Clerk's authenticate_request expects an httpx request
        httpx_request = httpx.Request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers)
        )
        try:
            request_state = self._clerk.authenticate_request(httpx_request, self._options)
        except ClerkBaseError as e:
            raise ExternalServiceException(
                service_name="Clerk",
                message=str(e),
                error_code=ErrorCode.AUTH_PROVIDER_ERROR,
            )

        if not request_state.is_signed_in:
            raise UnauthorizedException(
                reason=str(request_state.reason) if request_state.reason else "Invalid or expired session token",
            )

        user_id = (request_state.payload or {}).get("sub")
        if not user_id:
            raise UnauthorizedException(reason="Invalid token: missing user ID")
        return user_id

    async def authenticate(self, request: Request) -> str:
        """Return the caller's user id or raise UnauthorizedException"""
        return await run_in_threadpool(self._authenticate_sync, request)

    async def try_authenticate(self, request: Request) -> Optional[str]:
        """Like authenticate(), but signed-out callers yield None"""
        try:
            return await self.authenticate(request)
        except UnauthorizedException:
            return None
        except ExternalServiceException as e:
            logger.warning(f"Session check failed, treating as signed out: {e.message}")
            return None


def get_authenticator() -> Authenticator:
    """Per-request authenticator built from settings"""
    if not settings.CLERK_SECRET_KEY:
        raise ConfigurationException(
            "Authentication is not configured. Please check CLERK_SECRET_KEY environment variable.",
            setting="CLERK_SECRET_KEY",
        )
    return Authenticator(settings.CLERK_SECRET_KEY, settings.CLERK_AUTHORIZED_PARTIES)


async def get_current_user_id(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
) -> str:
    if credentials is None:
        raise UnauthorizedException(reason="Missing Authorization header")

    user_id = await authenticator.authenticate(request)

    # Picked up by request logging and the rate limiter key
    request.state.user_id = user_id
    return user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
