from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUserId
from ..database import get_async_db
from ..error_handlers import NotFoundException, DatabaseException
from ..logging_config import get_logger
from . import schemas, service

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/store", response_model=schemas.UserOut)
async def store_user(
    user: schemas.UserStore,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    """Mirror the signed-in user into the application table on first login"""
    logger.info("Storing user on login", extra={"user_id": user_id})
    return await service.store_user_on_login(db=db, user_id=user_id, user=user)


@router.get("/me", response_model=schemas.UserOut)
async def get_me(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    return await service.get_active_user(db, user_id)


@router.delete("/delete-account", response_model=schemas.UserDeleteResponse)
async def delete_account(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    """
    Delete the account:
    1. Soft delete the user and remove their entries and prompts
    2. Delete the identity from Clerk (best effort)
    """
    logger.info("Account deletion requested", extra={"user_id": user_id})

    deleted_user = await service.soft_delete_user(db, user_id)
    if not deleted_user:
        raise NotFoundException("User", user_id)
    if not deleted_user.deleted_at:
        raise DatabaseException("Failed to delete user")

    try:
        await service.delete_auth_user(user_id)
        logger.info("User deleted from Clerk", extra={"user_id": user_id})
    except Exception as e:
        # User is already soft-deleted locally; don't fail the request
        logger.error(
            f"Failed to delete from Clerk: {str(e)}",
            extra={"user_id": user_id},
            exc_info=True
        )

    return schemas.UserDeleteResponse(
        success=True,
        message="Account deleted successfully",
        deleted_at=deleted_user.deleted_at,
        user_id=user_id
    )
