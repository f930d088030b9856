import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    created_at = Column(TIMESTAMP(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    owner = relationship("User", back_populates="entries")
    prompts = relationship("AIPrompt", back_populates="entry", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<JournalEntry {self.id} user={self.user_id}>"
