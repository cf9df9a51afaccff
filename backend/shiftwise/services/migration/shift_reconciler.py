"""Migrates guest shifts, deduplicating on (UTC date, shift type, operation type)."""

import logging
import uuid
from datetime import date
from typing import Dict, Iterable, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.models.shift import OperationType, Shift, ShiftType
from shiftwise.schemas.local_data import LocalShift
from shiftwise.services.migration.outcomes import ReconcileReport
from shiftwise.utils.datetime_utils import to_naive_utc
from shiftwise.utils.shift_schedule import shift_date_bucket

logger = logging.getLogger(__name__)

ShiftKey = Tuple[date, str, str]


def shift_key(scheduled_date, shift_type, operation_type) -> ShiftKey:
    return (
        shift_date_bucket(scheduled_date),
        ShiftType(shift_type).value,
        OperationType(operation_type).value,
    )


class ShiftReconciler:
    """Maps each guest shift onto an existing cloud shift or inserts a new one."""

    async def migrate_shifts(
        self, db: AsyncSession, user_id: UUID, local_shifts: Iterable[LocalShift]
    ) -> ReconcileReport:
        report = ReconcileReport("shift")

        try:
            existing = await self._existing_keys(db, user_id)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to load existing cloud shifts: {e}")
            for local_shift in local_shifts:
                report.skipped(local_shift.id, "could not read existing cloud shifts")
            return report

        for local_shift in local_shifts:
            key = shift_key(
                local_shift.scheduled_date, local_shift.shift_type, local_shift.operation_type
            )

            cloud_id = existing.get(key)
            if cloud_id is not None:
                report.matched(local_shift.id, cloud_id)
                continue

            try:
                cloud_id = await self._insert_shift(db, user_id, local_shift)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Skipping shift {local_shift.id}: {e}")
                report.skipped(local_shift.id, f"insert failed: {e.__class__.__name__}")
                continue

            existing[key] = cloud_id
            report.migrated(local_shift.id, cloud_id)

        logger.info(
            f"Shifts reconciled: {report.migrated_count} migrated, "
            f"{report.matched_count} matched, {len(report.skipped_outcomes)} skipped"
        )
        return report

    async def _existing_keys(self, db: AsyncSession, user_id: UUID) -> Dict[ShiftKey, UUID]:
        result = await db.execute(
            select(Shift.id, Shift.scheduled_date, Shift.shift_type, Shift.operation_type).where(
                Shift.user_id == user_id
            )
        )
        keys: Dict[ShiftKey, UUID] = {}
        for shift_id, scheduled_date, shift_type, operation_type in result.all():
            keys.setdefault(shift_key(scheduled_date, shift_type, operation_type), shift_id)
        return keys

    async def _insert_shift(
        self, db: AsyncSession, user_id: UUID, local_shift: LocalShift
    ) -> UUID:
        shift = Shift(
            id=uuid.uuid4(),
            user_id=user_id,
            operation_type=local_shift.operation_type,
            shift_type=local_shift.shift_type,
            scheduled_date=to_naive_utc(local_shift.scheduled_date),
            scheduled_start=to_naive_utc(local_shift.scheduled_start),
            scheduled_end=to_naive_utc(local_shift.scheduled_end),
            status=local_shift.status,
            earnings=local_shift.earnings,
            earnings_recorded_at=to_naive_utc(local_shift.earnings_recorded_at),
        )
        db.add(shift)
        await db.commit()
        return shift.id


shift_reconciler = ShiftReconciler()
