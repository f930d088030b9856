from pydantic import BaseModel, Field

from ..users.models import SubscriptionStatus
from ..usage.schemas import UsageResponse


class CheckoutSessionOut(BaseModel):
    url: str
    session_id: str


class BillingSuccessRequest(BaseModel):
    session_id: str = Field(..., min_length=1, description="Stripe Checkout Session id from the success redirect")


class SubscriptionOut(BaseModel):
    subscription_status: SubscriptionStatus
    is_premium: bool
    usage: UsageResponse
