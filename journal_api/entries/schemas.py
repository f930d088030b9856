from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EntryCreate(BaseModel):
    content: str = Field(..., description="Journal text")


class EntryUpdate(BaseModel):
    content: str


class EntryOut(BaseModel):
    id: UUID
    user_id: str
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EntryListResponse(BaseModel):
    entries: list[EntryOut]
    total_count: int
