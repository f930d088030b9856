from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUserId
from ..config import settings
from ..database import get_async_db
from ..rate_limit import limiter
from .llm import ReflectionLLM, get_llm_client
from .schemas import PromptGenerateRequest, GeneratedPromptResponse
from . import service

router = APIRouter(prefix="/prompts", tags=["prompts"])


@router.post("/generate", response_model=GeneratedPromptResponse)
@limiter.limit(settings.PROMPT_RATE_LIMIT)
async def generate_prompt(
    request: Request,
    response: Response,
    payload: PromptGenerateRequest,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db),
    llm: ReflectionLLM = Depends(get_llm_client),
):
    """
    Generate one reflective follow-up question for the given journal text.

    Free accounts are limited per calendar month; premium is unlimited.
    """
    return await service.generate_prompt(
        db,
        llm,
        user_id=user_id,
        content=payload.content,
        entry_id=payload.entry_id,
    )
