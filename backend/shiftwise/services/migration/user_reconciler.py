"""Ensures the cloud user row exists before any guest record is migrated."""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.config import settings
from shiftwise.core.exceptions import UserProvisioningError
from shiftwise.models.user import User
from shiftwise.utils.logging_utils import redact_user_id

logger = logging.getLogger(__name__)


class UserReconciler:
    """The only fatal step of a migration run."""

    async def ensure_user_exists(
        self, db: AsyncSession, user_id: UUID, initial_balance: Decimal
    ) -> bool:
        """
        Make sure a cloud user row exists for ``user_id``.

        A new row starts with ``initial_balance``. An existing row is left
        untouched; crediting it is the balance merger's job.

        Returns:
            True if the row was created by this call, False if it already existed

        Raises:
            UserProvisioningError: If the row can neither be found nor created
        """
        try:
            result = await db.execute(select(User.id).where(User.id == user_id))
            if result.scalar_one_or_none() is not None:
                return False

            await self._insert_user(db, user_id, initial_balance)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to provision cloud user {redact_user_id(user_id)}: {e}")
            raise UserProvisioningError(f"Could not create user record: {e}") from e

        logger.info(f"Created cloud user {redact_user_id(user_id)} with balance {initial_balance}")
        return True

    async def _insert_user(self, db: AsyncSession, user_id: UUID, balance: Decimal) -> None:
        db.add(
            User(
                id=user_id,
                username=f"{settings.GUEST_USERNAME_PREFIX}{user_id.hex}",
                balance=balance,
            )
        )
        await db.commit()


user_reconciler = UserReconciler()
