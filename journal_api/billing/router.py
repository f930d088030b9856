from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUserId
from ..config import settings
from ..database import get_async_db
from ..rate_limit import limiter
from ..users.schemas import UserOut
from .base import BasePaymentProvider
from .factory import get_payment_provider
from .schemas import CheckoutSessionOut, BillingSuccessRequest, SubscriptionOut
from .service import BillingService, base_url_for, get_subscription

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/checkout-session", response_model=CheckoutSessionOut)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def create_checkout_session(
    request: Request,
    response: Response,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db),
    provider: BasePaymentProvider = Depends(get_payment_provider),
):
    """Start a Stripe Checkout for the monthly Premium plan"""
    billing = BillingService(db, provider)
    session = await billing.create_checkout_session(user_id, base_url_for(request.headers))
    return CheckoutSessionOut(url=session.url, session_id=session.session_id)


@router.post("/success", response_model=UserOut)
async def billing_success(
    user_id: CurrentUserId,
    payload: BillingSuccessRequest,
    db: AsyncSession = Depends(get_async_db),
    provider: BasePaymentProvider = Depends(get_payment_provider),
):
    """Called by the success page after Stripe redirects back"""
    billing = BillingService(db, provider)
    return await billing.confirm_upgrade(user_id, payload.session_id)


@router.get("/subscription", response_model=SubscriptionOut)
async def subscription(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db),
):
    return await get_subscription(db, user_id)
