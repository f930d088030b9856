import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, TIMESTAMP, Boolean, Enum
from sqlalchemy.orm import relationship

from ..database import Base


class SubscriptionStatus(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True)  # auth provider id
    email = Column(String, index=True, nullable=True)
    subscription_status = Column(
        Enum(SubscriptionStatus, name="subscription_status", values_callable=lambda e: [m.value for m in e]),
        default=SubscriptionStatus.FREE,
        nullable=False,
        server_default=SubscriptionStatus.FREE.value,
    )
    stripe_customer_id = Column(String, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Soft delete fields
    is_deleted = Column(Boolean, default=False, nullable=False, server_default='false')
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    entries = relationship("JournalEntry", back_populates="owner", cascade="all, delete-orphan")

    @property
    def is_premium(self) -> bool:
        return self.subscription_status == SubscriptionStatus.PREMIUM
