"""
Journal entry persistence. Every query is scoped by the owning user, so an
entry that belongs to someone else is indistinguishable from a missing one.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, delete, desc
from sqlalchemy.ext.asyncio import AsyncSession

from .models import JournalEntry
from ..prompts.models import AIPrompt
from ..users.service import ensure_user
from ..error_handlers import NotFoundException
from ..logging_config import get_logger, log_business_event

logger = get_logger(__name__)


def _like_pattern(q: str) -> str:
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def list_entries(db: AsyncSession, user_id: str, q: Optional[str] = None) -> List[JournalEntry]:
    """Owned entries, newest first, optionally filtered by a case-insensitive content match"""
    stmt = select(JournalEntry).where(JournalEntry.user_id == user_id)
    if q and q.strip():
        stmt = stmt.where(JournalEntry.content.ilike(_like_pattern(q.strip()), escape="\\"))
    result = await db.execute(stmt.order_by(desc(JournalEntry.created_at)))
    return list(result.scalars().all())


async def find_entry(db: AsyncSession, entry_id: UUID, user_id: str) -> Optional[JournalEntry]:
    result = await db.execute(
        select(JournalEntry).where(
            JournalEntry.id == entry_id,
            JournalEntry.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def get_entry(db: AsyncSession, entry_id: UUID, user_id: str) -> JournalEntry:
    entry = await find_entry(db, entry_id, user_id)
    if not entry:
        raise NotFoundException("Entry", str(entry_id))
    return entry


async def create_entry(db: AsyncSession, user_id: str, content: str) -> JournalEntry:
    await ensure_user(db, user_id)
    entry = JournalEntry(user_id=user_id, content=content)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    log_business_event(
        "entry_created",
        user_id=user_id,
        entry_id=str(entry.id),
        length=len(content)
    )
    return entry


async def update_entry(db: AsyncSession, entry_id: UUID, user_id: str, content: str) -> JournalEntry:
    # Last write wins: no version check between tabs
    entry = await get_entry(db, entry_id, user_id)
    entry.content = content
    entry.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(entry)

    logger.debug(
        "Entry updated",
        extra={"user_id": user_id, "extra_data": {"entry_id": str(entry_id), "length": len(content)}}
    )
    return entry


async def delete_entry(db: AsyncSession, entry_id: UUID, user_id: str) -> None:
    entry = await get_entry(db, entry_id, user_id)

    await db.execute(delete(AIPrompt).where(AIPrompt.entry_id == entry.id))
    await db.delete(entry)
    await db.commit()

    log_business_event("entry_deleted", user_id=user_id, entry_id=str(entry_id))
