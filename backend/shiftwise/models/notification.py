"""In-app notification model."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Index, String, Text

from shiftwise.core.database import Base
from shiftwise.core.db_types import UUID
from shiftwise.utils.datetime_utils import utc_now_lambda


class NotificationType(str, enum.Enum):
    """Notification types."""

    MIGRATION_COMPLETED = "migration_completed"


class Notification(Base):
    """Message shown to the user the next time the app renders notifications."""

    __tablename__ = "notifications"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type = Column(
        SQLEnum(
            NotificationType,
            native_enum=False,
            values_callable=lambda types: [t.value for t in types],
        ),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    __table_args__ = (Index("ix_notifications_user_unread", "user_id", "is_read"),)
