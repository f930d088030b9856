# journal_api/usage/service.py
"""
Monthly prompt quota backed by the prompt_usage ledger.

Free accounts get FREE_MONTHLY_PROMPT_LIMIT generations per calendar month
(UTC); premium accounts are unlimited.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from .models import PromptUsage
from .schemas import UsageResponse
from ..users.models import User
from ..config import settings
from ..error_handlers import PromptQuotaExceededException
from ..logging_config import get_logger

logger = get_logger(__name__)


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class UsageService:
    """Service for counting and recording prompt usage"""

    @classmethod
    def limit_for(cls, user: User) -> Optional[int]:
        if user.is_premium:
            return None
        return settings.FREE_MONTHLY_PROMPT_LIMIT

    @classmethod
    async def count_this_month(cls, db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> int:
        result = await db.execute(
            select(func.count(PromptUsage.id)).where(
                PromptUsage.user_id == user_id,
                PromptUsage.created_at >= month_start(now)
            )
        )
        return result.scalar_one()

    @classmethod
    async def get_usage(cls, db: AsyncSession, user: User, now: Optional[datetime] = None) -> UsageResponse:
        used = await cls.count_this_month(db, user.user_id, now)
        limit = cls.limit_for(user)
        return UsageResponse(
            subscription_status=user.subscription_status,
            prompts_used=used,
            prompts_limit=limit,
            remaining=None if limit is None else max(limit - used, 0),
            period_start=month_start(now),
        )

    @classmethod
    async def ensure_within_quota(cls, db: AsyncSession, user: User) -> int:
        """
        Raise PromptQuotaExceededException when a free account has no prompts left.

        Returns:
            Prompts used so far this month
        """
        used = await cls.count_this_month(db, user.user_id)
        limit = cls.limit_for(user)

        if limit is not None and used >= limit:
            logger.info(
                "Monthly prompt quota reached",
                extra={"user_id": user.user_id, "extra_data": {"used": used, "limit": limit}}
            )
            raise PromptQuotaExceededException(used=used, limit=limit)
        return used

    @classmethod
    def record(cls, db: AsyncSession, user_id: str, prompt_id: Optional[UUID] = None) -> PromptUsage:
        """Add a ledger row to the session; the caller commits"""
        usage = PromptUsage(user_id=user_id, prompt_id=prompt_id)
        db.add(usage)
        return usage
