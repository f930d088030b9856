"""
Page-level access control.

Unauthenticated visitors to the journaling, entries, settings or billing
sections are sent to the login page; signed-in visitors are sent away from it.
API routes are not guarded here - they authenticate through bearer dependencies.
"""

from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .dependencies import Authenticator, get_authenticator
from ..error_handlers import ConfigurationException
from ..logging_config import get_logger

logger = get_logger(__name__)

PROTECTED_PREFIXES = ("/journal", "/entries", "/settings", "/billing")
CALLBACK_PATHS = ("/callback", "/auth/callback")
LOGIN_PATH = "/login"
AFTER_LOGIN_PATH = "/journal/new"


def _matches_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def resolve_redirect(path: str, is_authenticated: bool) -> Optional[str]:
    """
    Return the path to redirect to, or None to let the request through
    """
    if path in CALLBACK_PATHS:
        return None
    if not is_authenticated and any(_matches_prefix(path, p) for p in PROTECTED_PREFIXES):
        return LOGIN_PATH
    if is_authenticated and path == LOGIN_PATH:
        return AFTER_LOGIN_PATH
    return None


def _needs_check(path: str) -> bool:
    return path == LOGIN_PATH or any(_matches_prefix(path, p) for p in PROTECTED_PREFIXES)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirects page requests according to resolve_redirect()"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path.startswith("/api") or not _needs_check(path):
            return await call_next(request)

        # Honour dependency overrides so tests and alternate deployments share one seam
        factory = request.app.dependency_overrides.get(get_authenticator, get_authenticator)
        try:
            authenticator: Authenticator = factory()
        except ConfigurationException:
            # Auth not configured (frontend-only development): allow everything
            logger.debug("Route guard skipped: authentication not configured")
            return await call_next(request)

        user_id = await authenticator.try_authenticate(request)
        target = resolve_redirect(path, user_id is not None)
        if target:
            url = request.url.replace(path=target, query="")
            return RedirectResponse(str(url), status_code=307)

        request.state.user_id = user_id
        return await call_next(request)
