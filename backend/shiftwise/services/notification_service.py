"""Service for managing user notifications."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.models.notification import Notification, NotificationType
from shiftwise.utils.datetime_utils import utc_now


class NotificationService:
    """Service for creating and reading in-app notifications."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
    ) -> Notification:
        """
        Create a new notification.

        Args:
            db: Database session
            user_id: Recipient
            type: Notification type
            title: Short title
            message: Detailed message

        Returns:
            Created notification
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
        )

        db.add(notification)
        await db.commit()
        await db.refresh(notification)

        return notification

    @staticmethod
    async def get_user_notifications(
        db: AsyncSession,
        user_id: UUID,
        include_read: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        """Get a user's notifications, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)

        if not include_read:
            query = query.where(Notification.is_read == False)  # noqa: E712

        query = query.order_by(Notification.created_at.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def mark_as_read(
        db: AsyncSession,
        notification_id: UUID,
        user_id: UUID,
    ) -> Optional[Notification]:
        """Mark notification as read."""
        result = await db.execute(
            select(Notification).where(
                and_(
                    Notification.id == notification_id,
                    Notification.user_id == user_id,
                )
            )
        )
        notification = result.scalar_one_or_none()

        if notification:
            notification.is_read = True
            notification.read_at = utc_now()
            await db.commit()
            await db.refresh(notification)

        return notification


notification_service = NotificationService()
