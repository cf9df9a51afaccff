"""Notification schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict

from shiftwise.models.notification import NotificationType
from shiftwise.schemas.migration import CamelModel


class NotificationResponse(CamelModel):
    """Schema for notification response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
