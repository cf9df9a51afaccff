"""
Guest-to-cloud migration pipeline.

One run moves a snapshot of guest data into the authenticated user's cloud
records:

    snapshot -> ensure user -> goals -> shifts -> allocations -> balance -> clear local

Only the user step is fatal. Goals, shifts and allocations are reconciled
record by record against natural keys, so a repeated run maps onto the rows
a previous run created instead of duplicating them.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.core.exceptions import UserProvisioningError
from shiftwise.core.logging_config import bound_log_context, get_logger
from shiftwise.schemas.local_data import LOCAL_USER_ID
from shiftwise.schemas.migration import MigrationResult, MigrationSnapshot, SkippedEntity
from shiftwise.services.local_storage_service import LocalStorageService
from shiftwise.services.migration.allocation_reconciler import (
    AllocationReconciler,
    allocation_reconciler,
)
from shiftwise.services.migration.balance_merger import BalanceMerger, balance_merger
from shiftwise.services.migration.goal_reconciler import GoalReconciler, goal_reconciler
from shiftwise.services.migration.local_state_cleaner import (
    LocalStateCleaner,
    local_state_cleaner,
)
from shiftwise.services.migration.outcomes import ReconcileReport
from shiftwise.services.migration.shift_reconciler import ShiftReconciler, shift_reconciler
from shiftwise.services.migration.snapshot_reader import SnapshotReader, snapshot_reader
from shiftwise.services.migration.user_reconciler import UserReconciler, user_reconciler
from shiftwise.services.migration_notifier import MigrationNotifier, in_app_migration_notifier
from shiftwise.utils.logging_utils import redact_user_id

logger = logging.getLogger(__name__)
events = get_logger(__name__)


@dataclass
class MigrationRun:
    """State threaded through the stages of one run."""

    db: AsyncSession
    user_id: UUID
    snapshot: MigrationSnapshot
    local_storage: LocalStorageService
    user_created: bool = False
    goals: ReconcileReport = field(default_factory=lambda: ReconcileReport("goal"))
    shifts: ReconcileReport = field(default_factory=lambda: ReconcileReport("shift"))
    allocations: ReconcileReport = field(default_factory=lambda: ReconcileReport("allocation"))
    extra_skips: List[SkippedEntity] = field(default_factory=list)

    def to_result(self) -> MigrationResult:
        skipped = [
            SkippedEntity(entity_type=o.entity_type, local_id=o.local_id, reason=o.reason or "")
            for report in (self.goals, self.shifts, self.allocations)
            for o in report.skipped_outcomes
        ]
        return MigrationResult(
            success=True,
            migrated_goals=self.goals.migrated_count,
            migrated_shifts=self.shifts.migrated_count,
            migrated_allocations=self.allocations.migrated_count,
            matched_goals=self.goals.matched_count,
            matched_shifts=self.shifts.matched_count,
            matched_allocations=self.allocations.matched_count,
            skipped=skipped + self.extra_skips,
        )


Stage = Callable[[MigrationRun], Awaitable[None]]


class MigrationOrchestrator:
    """Runs the migration stages in dependency order."""

    def __init__(
        self,
        reader: SnapshotReader = snapshot_reader,
        users: UserReconciler = user_reconciler,
        goals: GoalReconciler = goal_reconciler,
        shifts: ShiftReconciler = shift_reconciler,
        allocations: AllocationReconciler = allocation_reconciler,
        balance: BalanceMerger = balance_merger,
        cleaner: LocalStateCleaner = local_state_cleaner,
        notifier: Optional[MigrationNotifier] = in_app_migration_notifier,
    ):
        self.reader = reader
        self.users = users
        self.goals = goals
        self.shifts = shifts
        self.allocations = allocations
        self.balance = balance
        self.cleaner = cleaner
        self.notifier = notifier

    @property
    def stages(self) -> List[Tuple[str, Stage]]:
        # Allocations consume the goal and shift mappings, so they must come after both
        return [
            ("ensure_user", self._ensure_user),
            ("goals", self._migrate_goals),
            ("shifts", self._migrate_shifts),
            ("allocations", self._migrate_allocations),
            ("balance", self._merge_balance),
            ("clear_local", self._clear_local),
        ]

    async def run(
        self,
        db: AsyncSession,
        user_id: UUID,
        local_storage: LocalStorageService,
        snapshot: Optional[MigrationSnapshot] = None,
    ) -> MigrationResult:
        """
        Migrate guest data into ``user_id``'s cloud records.

        Args:
            db: Cloud database session
            user_id: Authenticated user id
            local_storage: Guest data service the snapshot is read from and cleared in
            snapshot: Snapshot captured before sign-in; read from the store if omitted

        Returns:
            MigrationResult; ``success`` is False only when the user row could
            not be provisioned or an unexpected error aborted the run
        """
        with bound_log_context(migration_run_id=str(uuid.uuid4()), user_id=redact_user_id(user_id)):
            if snapshot is None:
                try:
                    snapshot = await self.reader.get_snapshot(local_storage)
                except Exception as e:
                    logger.exception(f"Failed to capture local snapshot: {e}")
                    await self._notify_failure(user_id, str(e))
                    return MigrationResult(success=False, error=str(e))

            if snapshot is None or not snapshot.is_present:
                events.info("migration_noop", reason="no local data")
                return MigrationResult(success=True)

            events.info(
                "migration_started",
                goals=len(snapshot.goals),
                shifts=len(snapshot.shifts),
                allocations=len(snapshot.allocations),
            )

            run = MigrationRun(db=db, user_id=user_id, snapshot=snapshot, local_storage=local_storage)
            try:
                for name, stage in self.stages:
                    events.debug("migration_stage", stage=name)
                    await stage(run)
            except UserProvisioningError as e:
                events.error("migration_aborted", error=str(e))
                await self._notify_failure(user_id, str(e))
                return MigrationResult(success=False, error=str(e))
            except Exception as e:
                logger.exception(f"Migration failed unexpectedly: {e}")
                await self._notify_failure(user_id, str(e))
                return MigrationResult(success=False, error=str(e))

            result = run.to_result()
            for skip in result.skipped:
                events.warning(
                    "migration_entity_skipped",
                    entity_type=skip.entity_type,
                    local_id=skip.local_id,
                    reason=skip.reason,
                )
            events.info(
                "migration_completed",
                migrated_goals=result.migrated_goals,
                migrated_shifts=result.migrated_shifts,
                migrated_allocations=result.migrated_allocations,
                skipped=len(result.skipped),
            )

            await self._notify_success(user_id, result)
            return result

    # Stages --------------------------------------------------------------

    async def _ensure_user(self, run: MigrationRun) -> None:
        run.user_created = await self.users.ensure_user_exists(
            run.db, run.user_id, run.snapshot.balance
        )

    async def _migrate_goals(self, run: MigrationRun) -> None:
        run.goals = await self.goals.migrate_goals(run.db, run.user_id, run.snapshot.goals)

    async def _migrate_shifts(self, run: MigrationRun) -> None:
        run.shifts = await self.shifts.migrate_shifts(run.db, run.user_id, run.snapshot.shifts)

    async def _migrate_allocations(self, run: MigrationRun) -> None:
        run.allocations = await self.allocations.migrate_allocations(
            run.db, run.snapshot.allocations, run.goals.mapping, run.shifts.mapping
        )

    async def _merge_balance(self, run: MigrationRun) -> None:
        # A freshly created user already started with the guest balance
        if run.user_created:
            return
        try:
            await self.balance.merge_balance(
                run.db,
                run.user_id,
                run.snapshot.balance,
                run.goals.migrated_count,
                run.shifts.migrated_count,
            )
        except SQLAlchemyError as e:
            await run.db.rollback()
            logger.error(f"Failed to merge local balance: {e}")
            run.extra_skips.append(
                SkippedEntity(
                    entity_type="balance",
                    local_id=LOCAL_USER_ID,
                    reason=f"balance update failed: {e.__class__.__name__}",
                )
            )

    async def _clear_local(self, run: MigrationRun) -> None:
        await self.cleaner.clear_all(run.local_storage)

    async def _notify_success(self, user_id: UUID, result: MigrationResult) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify_success(user_id, result.migrated_goals, result.migrated_shifts)
        except Exception as e:
            logger.error(f"Failed to send migration success notice: {e}")

    async def _notify_failure(self, user_id: UUID, error: str) -> None:
        if self.notifier is not None:
            await self.notifier.notify_failure(user_id, error)


migration_orchestrator = MigrationOrchestrator()
