"""Unit tests for auth-event driven migration triggers."""

from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from shiftwise.schemas.migration import MigrationResult, MigrationSnapshot
from shiftwise.services.auth_events import AuthEvent, AuthEventHandler
from shiftwise.services.migration.gate import MigrationGate
from shiftwise.services.migration.snapshot_reader import SnapshotReader


@pytest.fixture
def gate() -> AsyncMock:
    mock = AsyncMock(spec=MigrationGate)
    mock.run.return_value = MigrationResult(success=True, migrated_goals=2)
    return mock


@pytest.fixture
def handler(gate) -> AuthEventHandler:
    return AuthEventHandler(gate=gate, reader=AsyncMock(spec=SnapshotReader))


@pytest.mark.unit
class TestSkipReason:
    @pytest.mark.parametrize(
        "event",
        [
            AuthEvent.SIGNED_IN,
            AuthEvent.SIGNED_UP,
            AuthEvent.SESSION_RESTORED,
            AuthEvent.AUTH_STATE_CHANGED,
        ],
    )
    def test_sign_in_like_events_migrate(self, event):
        assert AuthEventHandler.skip_reason(event) is None

    def test_sign_out_does_not_migrate(self):
        assert AuthEventHandler.skip_reason(AuthEvent.SIGNED_OUT) == "event signed_out does not migrate"

    def test_anonymous_session_does_not_migrate(self):
        assert AuthEventHandler.skip_reason(AuthEvent.SIGNED_IN, is_anonymous=True) == "anonymous session"

    def test_accepts_raw_event_values(self):
        assert AuthEventHandler.skip_reason("signed_up") is None


@pytest.mark.unit
class TestHandle:
    @pytest.mark.asyncio
    async def test_sign_in_runs_gate(self, handler, gate, local_storage):
        user_id = uuid4()
        snapshot = MigrationSnapshot(balance=Decimal("3"))

        result = await handler.handle(None, local_storage, AuthEvent.SIGNED_IN, user_id, snapshot)

        assert result.migrated_goals == 2
        gate.run.assert_awaited_once_with(None, user_id, local_storage, snapshot)

    @pytest.mark.asyncio
    async def test_sign_out_is_ignored(self, handler, gate, local_storage):
        result = await handler.handle(None, local_storage, AuthEvent.SIGNED_OUT, uuid4())

        assert result is None
        gate.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_anonymous_sign_in_is_ignored(self, handler, gate, local_storage):
        result = await handler.handle(
            None, local_storage, AuthEvent.SIGNED_IN, uuid4(), is_anonymous=True
        )

        assert result is None
        gate.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dropped_trigger_returns_none(self, handler, gate, local_storage):
        gate.run.return_value = None

        assert await handler.handle(None, local_storage, AuthEvent.SIGNED_IN, uuid4()) is None


@pytest.mark.unit
class TestCaptureSnapshot:
    @pytest.mark.asyncio
    async def test_snapshot_is_held_by_gate(self, handler, gate, local_storage):
        snapshot = MigrationSnapshot(balance=Decimal("9"))
        handler.reader.get_snapshot.return_value = snapshot

        captured = await handler.capture_snapshot(local_storage)

        assert captured is snapshot
        gate.capture.assert_called_once_with(snapshot)

    @pytest.mark.asyncio
    async def test_nothing_to_capture_clears_gate(self, handler, gate, local_storage):
        handler.reader.get_snapshot.return_value = None

        assert await handler.capture_snapshot(local_storage) is None
        gate.capture.assert_called_once_with(None)
