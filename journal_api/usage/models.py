import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, Uuid

from ..database import Base


class PromptUsage(Base):
    """Ledger of successful prompt generations, counted per calendar month"""
    __tablename__ = "prompt_usage"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    prompt_id = Column(Uuid(as_uuid=True), ForeignKey("ai_prompts.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
