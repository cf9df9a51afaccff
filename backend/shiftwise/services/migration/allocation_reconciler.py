"""Migrates guest goal allocations once their goal and shift have cloud ids."""

import logging
import uuid
from typing import Dict, Iterable, Mapping, Set, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.models.goal_allocation import GoalAllocation
from shiftwise.schemas.local_data import LocalGoalAllocation
from shiftwise.services.migration.outcomes import ReconcileReport

logger = logging.getLogger(__name__)

AllocationKey = Tuple[UUID, UUID]


class AllocationReconciler:
    """
    Remaps allocation foreign keys through the goal and shift mappings.

    An allocation is skipped when either reference did not resolve, and
    matched (not re-inserted) when the cloud already holds an allocation for
    the same (shift, goal) pair.
    """

    async def migrate_allocations(
        self,
        db: AsyncSession,
        local_allocations: Iterable[LocalGoalAllocation],
        goal_map: Mapping[str, UUID],
        shift_map: Mapping[str, UUID],
    ) -> ReconcileReport:
        report = ReconcileReport("allocation")
        resolved: Dict[str, AllocationKey] = {}

        for allocation in local_allocations:
            cloud_shift_id = shift_map.get(allocation.shift_id)
            cloud_goal_id = goal_map.get(allocation.goal_id)
            if cloud_shift_id is None or cloud_goal_id is None:
                logger.warning(f"Skipping allocation {allocation.id}: missing mapping")
                report.skipped(allocation.id, "missing goal or shift mapping")
                continue
            resolved[allocation.id] = (cloud_shift_id, cloud_goal_id)

        if not resolved:
            return report

        try:
            existing = await self._existing_pairs(db, {shift_id for shift_id, _ in resolved.values()})
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to load existing cloud allocations: {e}")
            for local_id in resolved:
                report.skipped(local_id, "could not read existing cloud allocations")
            return report

        for allocation in local_allocations:
            pair = resolved.get(allocation.id)
            if pair is None:
                continue

            if pair in existing:
                report.matched(allocation.id, existing[pair])
                continue

            try:
                cloud_id = await self._insert_allocation(db, pair, allocation)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Skipping allocation {allocation.id}: {e}")
                report.skipped(allocation.id, f"insert failed: {e.__class__.__name__}")
                continue

            existing[pair] = cloud_id
            report.migrated(allocation.id, cloud_id)

        logger.info(
            f"Allocations reconciled: {report.migrated_count} migrated, "
            f"{report.matched_count} matched, {len(report.skipped_outcomes)} skipped"
        )
        return report

    async def _existing_pairs(
        self, db: AsyncSession, shift_ids: Set[UUID]
    ) -> Dict[AllocationKey, UUID]:
        result = await db.execute(
            select(GoalAllocation.id, GoalAllocation.shift_id, GoalAllocation.goal_id).where(
                GoalAllocation.shift_id.in_(shift_ids)
            )
        )
        pairs: Dict[AllocationKey, UUID] = {}
        for allocation_id, shift_id, goal_id in result.all():
            pairs.setdefault((shift_id, goal_id), allocation_id)
        return pairs

    async def _insert_allocation(
        self, db: AsyncSession, pair: AllocationKey, allocation: LocalGoalAllocation
    ) -> UUID:
        shift_id, goal_id = pair
        row = GoalAllocation(
            id=uuid.uuid4(),
            shift_id=shift_id,
            goal_id=goal_id,
            amount=allocation.amount,
        )
        db.add(row)
        await db.commit()
        return row.id


allocation_reconciler = AllocationReconciler()
