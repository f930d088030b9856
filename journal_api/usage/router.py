from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUserId
from ..database import get_async_db
from ..users.service import ensure_user
from .schemas import UsageResponse
from .service import UsageService

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("", response_model=UsageResponse)
async def get_usage(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db),
):
    """Prompts used this month and the caller's limit"""
    user = await ensure_user(db, user_id)
    return await UsageService.get_usage(db, user)
