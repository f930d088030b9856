from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PromptGenerateRequest(BaseModel):
    """Raw editor text, a stored entry, or both (text wins)"""
    content: Optional[str] = None
    entry_id: Optional[UUID] = None


class PromptOut(BaseModel):
    id: UUID
    prompt_text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GeneratedPromptResponse(BaseModel):
    prompt_text: str
    id: UUID
    created_at: datetime
