# journal_api/prompts/service.py
"""
Reflective prompt generation.

Order of checks matters: ownership, then length, then quota, and only then
the upstream call. A rejected request never reaches Gemini and never
counts against the monthly quota.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from .llm import ReflectionLLM, clean_prompt_text
from .models import AIPrompt
from .schemas import GeneratedPromptResponse
from ..entries.service import get_entry
from ..usage.service import UsageService
from ..users.service import ensure_user
from ..config import settings
from ..error_handlers import (
    ValidationException,
    ContentTooShortException,
    ExternalServiceException,
    ErrorCode,
)
from ..logging_config import get_logger, log_business_event

logger = get_logger(__name__)


async def list_prompts_for_entry(db: AsyncSession, entry_id: UUID, user_id: str) -> List[AIPrompt]:
    """Stored prompts for an owned entry, newest first"""
    await get_entry(db, entry_id, user_id)
    result = await db.execute(
        select(AIPrompt)
        .where(AIPrompt.entry_id == entry_id)
        .order_by(desc(AIPrompt.created_at))
    )
    return list(result.scalars().all())


async def generate_prompt(
    db: AsyncSession,
    llm: ReflectionLLM,
    user_id: str,
    content: Optional[str] = None,
    entry_id: Optional[UUID] = None,
) -> GeneratedPromptResponse:
    if content is None and entry_id is None:
        raise ValidationException("Either content or entry_id is required")

    if entry_id is not None:
        entry = await get_entry(db, entry_id, user_id)
        if content is None:
            content = entry.content

    text = content.strip()
    if len(text) < settings.PROMPT_MIN_CONTENT_LENGTH:
        raise ContentTooShortException(len(text), settings.PROMPT_MIN_CONTENT_LENGTH)

    user = await ensure_user(db, user_id)
    used = await UsageService.ensure_within_quota(db, user)

    started = datetime.now(timezone.utc)
    raw = await llm.generate_question(text)
    prompt_text = clean_prompt_text(raw)
    if not prompt_text:
        raise ExternalServiceException(
            service_name="Gemini",
            message="No prompt generated",
            error_code=ErrorCode.LLM_API_ERROR,
        )

    prompt = None
    if entry_id is not None:
        prompt = AIPrompt(entry_id=entry_id, prompt_text=prompt_text)
        db.add(prompt)
        await db.flush()

    # The ledger row identifies prompts that were not stored against an entry
    usage = UsageService.record(db, user_id, prompt.id if prompt else None)
    await db.flush()
    await db.commit()

    duration_ms = (datetime.now(timezone.utc) - started).total_seconds() * 1000
    log_business_event(
        "prompt_generated",
        user_id=user_id,
        entry_id=str(entry_id) if entry_id else None,
        prompts_used=used + 1,
        duration_ms=round(duration_ms, 2),
    )

    return GeneratedPromptResponse(
        prompt_text=prompt_text,
        id=prompt.id if prompt else usage.id,
        created_at=prompt.created_at if prompt else usage.created_at,
    )
