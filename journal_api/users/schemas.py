from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

from .models import SubscriptionStatus


class UserStore(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    email: Optional[str]
    subscription_status: SubscriptionStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserDeleteResponse(BaseModel):
    success: bool
    message: str
    deleted_at: datetime
    user_id: str
