"""Turns auth provider events into migration runs."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shiftwise.schemas.migration import AuthEventType, MigrationResult, MigrationSnapshot
from shiftwise.services.local_storage_service import LocalStorageService
from shiftwise.services.migration.gate import MigrationGate, migration_gate
from shiftwise.services.migration.snapshot_reader import SnapshotReader, snapshot_reader

logger = logging.getLogger(__name__)

AuthEvent = AuthEventType

MIGRATING_EVENTS = frozenset(
    {
        AuthEvent.SIGNED_IN,
        AuthEvent.SIGNED_UP,
        AuthEvent.SESSION_RESTORED,
        AuthEvent.AUTH_STATE_CHANGED,
    }
)


class AuthEventHandler:
    """Runs the migration gate for sign-in-like events."""

    def __init__(
        self,
        gate: MigrationGate = migration_gate,
        reader: SnapshotReader = snapshot_reader,
    ):
        self.gate = gate
        self.reader = reader

    @staticmethod
    def skip_reason(event: AuthEvent, is_anonymous: bool = False) -> Optional[str]:
        """Why ``event`` does not trigger a migration, or None if it does."""
        if is_anonymous:
            return "anonymous session"
        if AuthEvent(event) not in MIGRATING_EVENTS:
            return f"event {AuthEvent(event).value} does not migrate"
        return None

    async def capture_snapshot(self, local_storage: LocalStorageService) -> Optional[MigrationSnapshot]:
        """
        Snapshot guest data before the auth call and hold it for the next run.

        Call this before signing in so that a guest-mode flag cleared during
        the auth flow cannot hide the data from the migration.
        """
        snapshot = await self.reader.get_snapshot(local_storage)
        self.gate.capture(snapshot)
        return snapshot

    async def handle(
        self,
        db: AsyncSession,
        local_storage: LocalStorageService,
        event: AuthEvent,
        user_id: UUID,
        snapshot: Optional[MigrationSnapshot] = None,
        is_anonymous: bool = False,
    ) -> Optional[MigrationResult]:
        """
        Returns:
            The migration result, or None if the event was ignored or a run
            was already in flight
        """
        reason = self.skip_reason(event, is_anonymous)
        if reason:
            logger.debug(f"Auth event ignored: {reason}")
            return None

        return await self.gate.run(db, user_id, local_storage, snapshot)


auth_event_handler = AuthEventHandler()
