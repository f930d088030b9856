from datetime import datetime, timezone
from typing import Optional

import httpx
from sqlalchemy import select, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from . import models, schemas
from ..entries.models import JournalEntry
from ..prompts.models import AIPrompt
from ..config import settings
from ..logging_config import get_logger, log_business_event
from ..error_handlers import NotFoundException

logger = get_logger(__name__)


async def store_user_on_login(db: AsyncSession, user_id: str, user: schemas.UserStore) -> models.User:
    """Mirror the authenticated identity into the users table on first login"""
    result = await db.execute(select(models.User).where(models.User.user_id == user_id))
    db_user = result.scalar_one_or_none()

    if db_user and not db_user.is_deleted:
        if user.email and db_user.email != user.email:
            db_user.email = user.email
            await db.commit()
        return db_user

    if db_user:
        # Reactivate a previously deleted account
        db_user.is_deleted = False
        db_user.deleted_at = None
        db_user.email = user.email or db_user.email
        await db.commit()
        await db.refresh(db_user)
        logger.info("Reactivated deleted user", extra={"user_id": user_id})
        return db_user

    return await create_user_if_missing(db, user_id, user.email)


def _dialect_insert(db: AsyncSession):
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


async def create_user_if_missing(db: AsyncSession, user_id: str, email: Optional[str] = None) -> models.User:
    """
    Insert the user row unless it already exists, then return the stored row.

    Concurrent first requests (autosave and a prompt firing together) can
    both get here; the one that loses the insert returns the other's row.
    """
    stmt = _dialect_insert(db)(models.User).values(
        user_id=user_id,
        email=email,
        subscription_status=models.SubscriptionStatus.FREE,
        is_deleted=False,
        created_at=datetime.now(timezone.utc),
    ).on_conflict_do_nothing(index_elements=["user_id"])

    result = await db.execute(stmt)
    await db.commit()

    inserted = result.rowcount == 1
    db_user = (await db.execute(
        select(models.User).where(models.User.user_id == user_id).execution_options(populate_existing=True)
    )).scalar_one()

    if inserted:
        log_business_event("user_signed_up", user_id=user_id)
    else:
        logger.info("User row already created by a concurrent request", extra={"user_id": user_id})
    return db_user


async def get_user_by_id(db: AsyncSession, user_id: str, for_update: bool = False) -> Optional[models.User]:
    """Get active user by ID"""
    stmt = select(models.User).where(
        models.User.user_id == user_id,
        models.User.is_deleted.is_(False)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_user(db: AsyncSession, user_id: str, for_update: bool = False) -> models.User:
    """Get active user or raise NotFoundException"""
    user = await get_user_by_id(db, user_id, for_update=for_update)
    if not user:
        raise NotFoundException("User", user_id)
    return user


async def set_subscription_status(
    db: AsyncSession,
    user_id: str,
    status: models.SubscriptionStatus,
    stripe_customer_id: Optional[str] = None
) -> models.User:
    user = await get_active_user(db, user_id, for_update=True)
    user.subscription_status = status
    if stripe_customer_id:
        user.stripe_customer_id = stripe_customer_id
    await db.commit()
    await db.refresh(user)
    return user


async def soft_delete_user(db: AsyncSession, user_id: str) -> Optional[models.User]:
    """Soft delete the user and permanently remove their journal data"""
    user = await get_user_by_id(db, user_id)
    if not user:
        return None

    entry_ids = select(JournalEntry.id).where(JournalEntry.user_id == user_id)
    await db.execute(delete(AIPrompt).where(AIPrompt.entry_id.in_(entry_ids)))
    await db.execute(delete(JournalEntry).where(JournalEntry.user_id == user_id))

    user.is_deleted = True
    user.deleted_at = datetime.now(timezone.utc)
    user.subscription_status = models.SubscriptionStatus.FREE

    await db.commit()
    await db.refresh(user)

    logger.info(f"Soft deleted user {user_id} and removed journal entries")
    return user


async def delete_auth_user(user_id: str, client: Optional[httpx.AsyncClient] = None) -> bool:
    """Delete the identity from Clerk"""
    clerk_secret_key = settings.CLERK_SECRET_KEY

    if not clerk_secret_key:
        raise RuntimeError("CLERK_SECRET_KEY not configured")

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10.0)
    try:
        response = await client.delete(
            f"https://api.clerk.com/v1/users/{user_id}",
            headers={
                "Authorization": f"Bearer {clerk_secret_key}",
                "Content-Type": "application/json"
            }
        )
    finally:
        if owns_client:
            await client.aclose()

    if response.status_code not in (200, 204):
        raise RuntimeError(f"Clerk deletion failed: {response.text}")

    return True


async def ensure_user(db: AsyncSession, user_id: str, for_update: bool = False) -> models.User:
    """
    Return the active user, mirroring a bare row when the client skipped
    /users/store (entries and prompts reference users by foreign key)
    """
    user = await get_user_by_id(db, user_id, for_update=for_update)
    if user:
        return user
    return await store_user_on_login(db, user_id, schemas.UserStore())
