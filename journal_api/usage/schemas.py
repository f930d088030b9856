from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..users.models import SubscriptionStatus


class UsageResponse(BaseModel):
    subscription_status: SubscriptionStatus
    prompts_used: int
    prompts_limit: Optional[int] = None  # None = unlimited
    remaining: Optional[int] = None
    period_start: datetime
