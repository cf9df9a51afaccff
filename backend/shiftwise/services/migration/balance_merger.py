"""Credits the guest balance to an existing cloud user."""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.models.user import User
from shiftwise.utils.logging_utils import redact_user_id

logger = logging.getLogger(__name__)


class BalanceMerger:
    """
    Adds the guest balance to the cloud balance, at most once per real migration.

    The merge only runs when something was actually inserted this run; a
    repeat run that only matched existing rows must not credit the balance
    again. The read-then-write is not atomic.
    """

    @staticmethod
    def should_merge(local_balance: Decimal, migrated_goals: int, migrated_shifts: int) -> bool:
        return local_balance > 0 and (migrated_goals + migrated_shifts) > 0

    async def merge_balance(
        self,
        db: AsyncSession,
        user_id: UUID,
        local_balance: Decimal,
        migrated_goals: int,
        migrated_shifts: int,
    ) -> bool:
        """
        Returns:
            True if the balance was written
        """
        if not self.should_merge(local_balance, migrated_goals, migrated_shifts):
            return False

        result = await db.execute(select(User.balance).where(User.id == user_id))
        current = result.scalar_one_or_none() or Decimal("0")
        new_balance = Decimal(current) + Decimal(local_balance)

        await db.execute(update(User).where(User.id == user_id).values(balance=new_balance))
        await db.commit()

        logger.info(
            f"Merged local balance for {redact_user_id(user_id)}: {current} + {local_balance} = {new_balance}"
        )
        return True


balance_merger = BalanceMerger()
