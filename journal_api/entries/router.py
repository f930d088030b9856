from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUserId
from ..database import get_async_db
from ..prompts import service as prompt_service
from ..prompts.schemas import PromptOut
from . import schemas, service

router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("", response_model=schemas.EntryListResponse)
async def list_entries(
    user_id: CurrentUserId,
    q: Optional[str] = Query(None, max_length=200, description="Case-insensitive text to search for"),
    db: AsyncSession = Depends(get_async_db)
):
    """List the caller's entries, newest first"""
    entries = await service.list_entries(db, user_id, q=q)
    return schemas.EntryListResponse(
        entries=[schemas.EntryOut.model_validate(e) for e in entries],
        total_count=len(entries)
    )


@router.post("", response_model=schemas.EntryOut, status_code=status.HTTP_201_CREATED)
async def create_entry(
    payload: schemas.EntryCreate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    return await service.create_entry(db, user_id, payload.content)


@router.get("/{entry_id}", response_model=schemas.EntryOut)
async def get_entry(
    entry_id: UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    return await service.get_entry(db, entry_id, user_id)


@router.put("/{entry_id}", response_model=schemas.EntryOut)
async def update_entry(
    entry_id: UUID,
    payload: schemas.EntryUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    return await service.update_entry(db, entry_id, user_id, payload.content)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    await service.delete_entry(db, entry_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{entry_id}/prompts", response_model=list[PromptOut])
async def list_entry_prompts(
    entry_id: UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_async_db)
):
    """Reflective prompts stored against an entry, newest first"""
    return await prompt_service.list_prompts_for_entry(db, entry_id, user_id)
