"""Captures guest data as an immutable migration snapshot."""

import logging
from decimal import Decimal
from typing import Optional

from shiftwise.core.exceptions import LocalStoreError
from shiftwise.schemas.migration import MigrationSnapshot
from shiftwise.services.local_storage_service import LocalStorageService
from shiftwise.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class SnapshotReader:
    """Reads the guest store without side effects."""

    async def get_snapshot(self, local_storage: LocalStorageService) -> Optional[MigrationSnapshot]:
        """
        Return a snapshot of guest data, or None when there is nothing to migrate.

        None is returned when the has-local-data flag is unset, when the data
        is empty (no goals, no shifts, zero balance), or when the store cannot
        be read at all.
        """
        try:
            if not await local_storage.local_data_flag_set():
                return None

            user = await local_storage.peek_user()
            goals = await local_storage.get_goals()
            shifts = await local_storage.get_shifts()
            allocations = await local_storage.get_goal_allocations()
        except LocalStoreError as e:
            logger.error(f"Failed to read local data, treating as empty: {e}")
            return None

        snapshot = MigrationSnapshot(
            balance=user.balance if user else Decimal("0"),
            goals=tuple(goals),
            shifts=tuple(shifts),
            allocations=tuple(allocations),
            captured_at=utc_now(),
        )
        if not snapshot.is_present:
            return None

        logger.info(
            f"Captured local snapshot: {len(goals)} goals, {len(shifts)} shifts, "
            f"{len(allocations)} allocations, balance {snapshot.balance}"
        )
        return snapshot


snapshot_reader = SnapshotReader()
