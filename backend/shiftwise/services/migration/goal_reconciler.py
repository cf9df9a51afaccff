"""Migrates guest goals, deduplicating on (name, target amount)."""

import logging
import uuid
from decimal import Decimal
from typing import Dict, Iterable, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.models.goal import Goal
from shiftwise.schemas.local_data import LocalGoal, normalize_goal_status
from shiftwise.services.migration.outcomes import ReconcileReport
from shiftwise.utils.datetime_utils import to_naive_utc

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

GoalKey = Tuple[str, Decimal]


def goal_key(name: str, target_amount) -> GoalKey:
    """Natural key: exact name plus target amount rounded to cents."""
    return name, Decimal(str(target_amount)).quantize(CENT)


class GoalReconciler:
    """Maps each guest goal onto an existing cloud goal or inserts a new one."""

    async def migrate_goals(
        self, db: AsyncSession, user_id: UUID, local_goals: Iterable[LocalGoal]
    ) -> ReconcileReport:
        report = ReconcileReport("goal")

        try:
            existing = await self._existing_keys(db, user_id)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to load existing cloud goals: {e}")
            for local_goal in local_goals:
                report.skipped(local_goal.id, "could not read existing cloud goals")
            return report

        for local_goal in local_goals:
            key = goal_key(local_goal.name, local_goal.target_amount)

            cloud_id = existing.get(key)
            if cloud_id is not None:
                report.matched(local_goal.id, cloud_id)
                continue

            try:
                cloud_id = await self._insert_goal(db, user_id, local_goal)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Skipping goal {local_goal.id}: {e}")
                report.skipped(local_goal.id, f"insert failed: {e.__class__.__name__}")
                continue

            existing[key] = cloud_id
            report.migrated(local_goal.id, cloud_id)

        logger.info(
            f"Goals reconciled: {report.migrated_count} migrated, "
            f"{report.matched_count} matched, {len(report.skipped_outcomes)} skipped"
        )
        return report

    async def _existing_keys(self, db: AsyncSession, user_id: UUID) -> Dict[GoalKey, UUID]:
        result = await db.execute(
            select(Goal.id, Goal.name, Goal.target_amount).where(Goal.user_id == user_id)
        )
        keys: Dict[GoalKey, UUID] = {}
        for goal_id, name, target_amount in result.all():
            keys.setdefault(goal_key(name, target_amount), goal_id)
        return keys

    async def _insert_goal(self, db: AsyncSession, user_id: UUID, local_goal: LocalGoal) -> UUID:
        goal = Goal(
            id=uuid.uuid4(),
            user_id=user_id,
            name=local_goal.name,
            icon_key=local_goal.icon_key,
            icon_color=local_goal.icon_color,
            icon_bg_color=local_goal.icon_bg_color,
            target_amount=local_goal.target_amount,
            current_amount=local_goal.current_amount,
            status=normalize_goal_status(local_goal.status),
            is_primary=local_goal.is_primary,
            order_index=local_goal.order_index,
            allocation_percentage=local_goal.allocation_percentage,
            deadline=to_naive_utc(local_goal.deadline),
            completed_at=to_naive_utc(local_goal.completed_at),
        )
        db.add(goal)
        await db.commit()
        return goal.id


goal_reconciler = GoalReconciler()
