# journal_api/billing/service.py
"""
Premium subscription flow:
1. create_checkout_session() -> hosted Stripe Checkout page
2. Stripe redirects to {base}/billing/success?session_id=...
3. confirm_upgrade() verifies the session and marks the account premium
"""

from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .base import BasePaymentProvider, CheckoutSessionResponse
from .schemas import SubscriptionOut
from ..config import settings
from ..error_handlers import ForbiddenException, CheckoutNotCompletedException
from ..logging_config import get_logger, log_business_event
from ..usage.service import UsageService
from ..users import service as user_service
from ..users.models import SubscriptionStatus, User

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"


def resolve_base_url(headers: Mapping[str, str], site_url: Optional[str] = None) -> str:
    """
    Base URL for checkout redirects:
    explicit SITE_URL, else the forwarded proto + host, else localhost.
    """
    if site_url:
        return site_url.rstrip("/")

    host = headers.get("host")
    if host:
        protocol = headers.get("x-forwarded-proto") or ("http" if "localhost" in host else "https")
        return f"{protocol}://{host}"

    return DEFAULT_BASE_URL


class BillingService:

    def __init__(self, db: AsyncSession, provider: BasePaymentProvider):
        self.db = db
        self.provider = provider

    async def create_checkout_session(self, user_id: str, base_url: str) -> CheckoutSessionResponse:
        user = await user_service.ensure_user(self.db, user_id)

        success_url = f"{base_url}/billing/success?session_id={{CHECKOUT_SESSION_ID}}"
        cancel_url = f"{base_url}/billing"

        logger.info(
            "Creating checkout session",
            extra={"user_id": user_id, "extra_data": {"base_url": base_url}}
        )

        session = await self.provider.create_checkout_session(
            user_id=user_id,
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=user.email,
        )

        log_business_event("checkout_created", user_id=user_id, session_id=session.session_id)
        return session

    async def confirm_upgrade(self, user_id: str, session_id: str) -> User:
        """
        Mark the caller premium after a successful checkout.

        The session must belong to the caller and be paid.
        """
        session = await self.provider.retrieve_checkout_session(session_id)
        if session.client_reference_id != user_id:
            logger.warning(
                "Checkout session belongs to another user",
                extra={"user_id": user_id, "extra_data": {"session_id": session_id}}
            )
            raise ForbiddenException("Checkout session does not belong to this account")
        if not session.is_complete:
            raise CheckoutNotCompletedException(session_id)

        await user_service.ensure_user(self.db, user_id)
        user = await user_service.set_subscription_status(
            self.db,
            user_id,
            SubscriptionStatus.PREMIUM,
            stripe_customer_id=session.customer_id,
        )

        log_business_event(
            "subscription_upgraded",
            user_id=user_id,
            session_id=session_id,
        )
        return user


async def get_subscription(db: AsyncSession, user_id: str) -> SubscriptionOut:
    user = await user_service.ensure_user(db, user_id)
    usage = await UsageService.get_usage(db, user)
    return SubscriptionOut(
        subscription_status=user.subscription_status,
        is_premium=user.is_premium,
        usage=usage,
    )


def base_url_for(headers: Mapping[str, str]) -> str:
    return resolve_base_url(headers, settings.SITE_URL)
