"""Single-flight guard around the migration orchestrator."""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.schemas.migration import MigrationResult, MigrationSnapshot
from shiftwise.services.local_storage_service import LocalStorageService
from shiftwise.services.migration.orchestrator import MigrationOrchestrator, migration_orchestrator
from shiftwise.utils.logging_utils import redact_user_id

logger = logging.getLogger(__name__)


class MigrationGate:
    """
    Lets at most one migration run at a time in this process.

    A trigger that arrives while a run is in flight is dropped, not queued.
    A snapshot captured ahead of sign-in is handed to the next run and
    cleared when that run finishes, whatever its outcome. Separate processes
    are not coordinated; natural-key dedup covers that case.
    """

    def __init__(self, orchestrator: MigrationOrchestrator = migration_orchestrator):
        self.orchestrator = orchestrator
        self._lock = asyncio.Lock()
        self._captured_snapshot: Optional[MigrationSnapshot] = None

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    @property
    def captured_snapshot(self) -> Optional[MigrationSnapshot]:
        return self._captured_snapshot

    def capture(self, snapshot: Optional[MigrationSnapshot]) -> None:
        """Hold a snapshot taken before the auth call for the next run."""
        self._captured_snapshot = snapshot

    async def run(
        self,
        db: AsyncSession,
        user_id: UUID,
        local_storage: LocalStorageService,
        snapshot: Optional[MigrationSnapshot] = None,
    ) -> Optional[MigrationResult]:
        """
        Run a migration unless one is already in flight.

        Returns:
            The run's MigrationResult, or None if the trigger was dropped
        """
        if self._lock.locked():
            logger.info(f"Migration already in progress, ignoring trigger for {redact_user_id(user_id)}")
            return None

        async with self._lock:
            try:
                return await self.orchestrator.run(
                    db, user_id, local_storage, snapshot or self._captured_snapshot
                )
            finally:
                self._captured_snapshot = None


migration_gate = MigrationGate()
