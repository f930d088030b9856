import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, TIMESTAMP, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class AIPrompt(Base):
    """A generated reflective question; written once, never mutated"""
    __tablename__ = "ai_prompts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entry_id = Column(Uuid(as_uuid=True), ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt_text = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    entry = relationship("JournalEntry", back_populates="prompts")
