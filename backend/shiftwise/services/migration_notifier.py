"""Tells the user how a migration went."""

import logging
from abc import ABC, abstractmethod
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shiftwise.core.database import AsyncSessionLocal
from shiftwise.models.notification import NotificationType
from shiftwise.services.notification_service import NotificationService
from shiftwise.utils.logging_utils import redact_user_id

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "We couldn't move your offline data to your account. Please try again later."


class MigrationNotifier(ABC):
    """Receives the summary of every migration run."""

    @abstractmethod
    async def notify_success(self, user_id: UUID, migrated_goals: int, migrated_shifts: int) -> None:
        pass

    @abstractmethod
    async def notify_failure(self, user_id: UUID, error: str) -> None:
        pass


class InAppMigrationNotifier(MigrationNotifier):
    """
    Stores a notification row when a run migrated anything.

    Uses its own session so a notification write never interferes with the
    migration session. Failures are only logged: the user row may not exist
    yet, and the migration outcome must not depend on the notice.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    async def notify_success(self, user_id: UUID, migrated_goals: int, migrated_shifts: int) -> None:
        if migrated_goals <= 0 and migrated_shifts <= 0:
            return

        message = (
            f"Your offline data is now in your account: "
            f"{migrated_goals} goal(s) and {migrated_shifts} shift(s)."
        )
        try:
            async with self.session_factory() as db:
                await NotificationService.create_notification(
                    db,
                    user_id=user_id,
                    type=NotificationType.MIGRATION_COMPLETED,
                    title="Data synced",
                    message=message,
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to store migration notice for {redact_user_id(user_id)}: {e}")

    async def notify_failure(self, user_id: UUID, error: str) -> None:
        logger.warning(f"{FAILURE_NOTICE} (user {redact_user_id(user_id)}: {error})")


in_app_migration_notifier = InAppMigrationNotifier()
