"""Unit tests for the end-to-end guest migration pipeline."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from shiftwise.core.exceptions import UserProvisioningError
from shiftwise.models.goal import Goal
from shiftwise.models.goal_allocation import GoalAllocation
from shiftwise.models.shift import OperationType, Shift, ShiftType
from shiftwise.models.user import User
from shiftwise.services.key_value_store import FileKeyValueStore
from shiftwise.services.local_storage_service import KEY_GOALS, KEY_HAS_LOCAL_DATA, LocalStorageService
from shiftwise.services.migration.balance_merger import BalanceMerger
from shiftwise.services.migration.goal_reconciler import GoalReconciler
from shiftwise.services.migration.local_state_cleaner import LocalStateCleaner
from shiftwise.services.migration.orchestrator import MigrationOrchestrator
from shiftwise.services.migration.snapshot_reader import SnapshotReader
from shiftwise.services.migration.user_reconciler import UserReconciler
from shiftwise.services.migration_notifier import MigrationNotifier


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock(spec=MigrationNotifier)


@pytest.fixture
def orchestrator(notifier) -> MigrationOrchestrator:
    return MigrationOrchestrator(notifier=notifier)


async def _seed_guest_data(local_storage, balance="50"):
    goal = await local_storage.create_goal(name="Trip", target_amount="1000")
    shift = await local_storage.create_shift(OperationType.RETURNS, ShiftType.DAY, date(2024, 3, 1))
    await local_storage.create_goal_allocation(shift.id, goal.id, Decimal("25"))
    await local_storage.update_user(balance=Decimal(balance))
    return goal, shift


async def _count(db, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar()


async def _cloud_balance(db, user_id) -> Decimal:
    return (await db.execute(select(User.balance).where(User.id == user_id))).scalar_one()


@pytest.mark.unit
class TestMigrationRun:
    @pytest.mark.asyncio
    async def test_new_user_starts_with_guest_balance(self, orchestrator, db, local_storage, user_id):
        await _seed_guest_data(local_storage)

        result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is True
        assert result.migrated_goals == 1
        assert result.migrated_shifts == 1
        assert result.migrated_allocations == 1
        assert result.skipped == []
        assert await _cloud_balance(db, user_id) == Decimal("50")

    @pytest.mark.asyncio
    async def test_existing_user_balance_is_merged(self, orchestrator, db, local_storage, cloud_user):
        await _seed_guest_data(local_storage)

        result = await orchestrator.run(db, cloud_user.id, local_storage)

        assert result.success is True
        assert await _cloud_balance(db, cloud_user.id) == Decimal("50")

    @pytest.mark.asyncio
    async def test_guest_data_is_cleared_after_success(self, orchestrator, db, local_storage, kv_store, user_id):
        await _seed_guest_data(local_storage)

        await orchestrator.run(db, user_id, local_storage)

        assert kv_store.data == {}

    @pytest.mark.asyncio
    async def test_rerun_with_same_snapshot_creates_nothing(
        self, orchestrator, db, local_storage, cloud_user
    ):
        await _seed_guest_data(local_storage)
        snapshot = await SnapshotReader().get_snapshot(local_storage)

        first = await orchestrator.run(db, cloud_user.id, local_storage, snapshot)
        second = await orchestrator.run(db, cloud_user.id, local_storage, snapshot)

        assert first.migrated_goals == 1
        assert (second.migrated_goals, second.migrated_shifts, second.migrated_allocations) == (0, 0, 0)
        assert (second.matched_goals, second.matched_shifts, second.matched_allocations) == (1, 1, 1)
        assert await _count(db, Goal) == 1
        assert await _count(db, Shift) == 1
        assert await _count(db, GoalAllocation) == 1
        assert await _cloud_balance(db, cloud_user.id) == Decimal("50")

    @pytest.mark.asyncio
    async def test_empty_store_is_a_noop(self, orchestrator, notifier, db, local_storage, user_id):
        result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is True
        assert result.migrated_goals == 0
        assert await _count(db, User) == 0
        notifier.notify_success.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_user_provisioning_failure_aborts_run(self, notifier, db, local_storage, kv_store, user_id):
        await _seed_guest_data(local_storage)
        users = UserReconciler()
        goals = AsyncMock(spec=GoalReconciler)
        orchestrator = MigrationOrchestrator(users=users, goals=goals, notifier=notifier)

        with patch.object(
            users, "ensure_user_exists", side_effect=UserProvisioningError("Could not create user record")
        ):
            result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is False
        assert result.error == "Could not create user record"
        goals.migrate_goals.assert_not_awaited()
        assert KEY_GOALS in kv_store.data
        assert kv_store.data[KEY_HAS_LOCAL_DATA] == "true"
        notifier.notify_failure.assert_awaited_once_with(user_id, "Could not create user record")

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_not_raised(self, notifier, db, local_storage, user_id):
        await _seed_guest_data(local_storage)
        cleaner = AsyncMock(spec=LocalStateCleaner)
        cleaner.clear_all.side_effect = RuntimeError("store vanished")
        orchestrator = MigrationOrchestrator(cleaner=cleaner, notifier=notifier)

        result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is False
        assert result.error == "store vanished"
        notifier.notify_failure.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_goal_skips_its_allocation_and_still_clears(
        self, notifier, db, local_storage, kv_store, user_id
    ):
        goal, _ = await _seed_guest_data(local_storage)
        goals = GoalReconciler()
        orchestrator = MigrationOrchestrator(goals=goals, notifier=notifier)

        with patch.object(goals, "_insert_goal", side_effect=SQLAlchemyError("rejected")):
            result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is True
        assert result.migrated_goals == 0
        assert result.migrated_shifts == 1
        skipped = {(s.entity_type, s.local_id) for s in result.skipped}
        assert ("goal", goal.id) in skipped
        assert any(s.entity_type == "allocation" for s in result.skipped)
        assert kv_store.data == {}

    @pytest.mark.asyncio
    async def test_balance_write_failure_is_skipped(self, notifier, db, local_storage, cloud_user):
        await _seed_guest_data(local_storage)
        balance = AsyncMock(spec=BalanceMerger)
        balance.merge_balance.side_effect = OperationalError("UPDATE users", {}, Exception("locked"))
        orchestrator = MigrationOrchestrator(balance=balance, notifier=notifier)

        result = await orchestrator.run(db, cloud_user.id, local_storage)

        assert result.success is True
        assert [s.entity_type for s in result.skipped] == ["balance"]

    @pytest.mark.asyncio
    async def test_created_user_is_not_credited_twice(self, notifier, db, local_storage, user_id):
        await _seed_guest_data(local_storage)
        balance = AsyncMock(spec=BalanceMerger)
        orchestrator = MigrationOrchestrator(balance=balance, notifier=notifier)

        await orchestrator.run(db, user_id, local_storage)

        balance.merge_balance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_notice_carries_counts(self, orchestrator, notifier, db, local_storage, user_id):
        await _seed_guest_data(local_storage)

        await orchestrator.run(db, user_id, local_storage)

        notifier.notify_success.assert_awaited_once_with(user_id, 1, 1)

    @pytest.mark.asyncio
    async def test_success_notice_failure_keeps_result(
        self, orchestrator, notifier, db, local_storage, kv_store, user_id
    ):
        await _seed_guest_data(local_storage)
        notifier.notify_success.side_effect = RuntimeError("notifications table locked")

        result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is True
        assert result.migrated_goals == 1
        assert kv_store.data == {}
        assert await _count(db, Goal) == 1

    @pytest.mark.asyncio
    async def test_snapshot_read_error_is_reported_not_raised(self, notifier, db, local_storage, user_id):
        reader = AsyncMock(spec=SnapshotReader)
        reader.get_snapshot.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        orchestrator = MigrationOrchestrator(reader=reader, notifier=notifier)

        result = await orchestrator.run(db, user_id, local_storage)

        assert result.success is False
        assert "invalid start byte" in result.error
        notifier.notify_failure.assert_awaited_once()
        notifier.notify_success.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_undecodable_file_store_is_a_noop(self, orchestrator, notifier, db, tmp_path, user_id):
        storage = LocalStorageService(FileKeyValueStore(str(tmp_path)))
        await storage.create_goal(name="Trip", target_amount="100")
        (tmp_path / "local_goals.json").write_bytes(b"\xff\xfe[garbage")

        result = await orchestrator.run(db, user_id, storage)

        assert result.success is True
        assert result.migrated_goals == 0
        assert await _count(db, Goal) == 0


@pytest.mark.unit
class TestStages:
    def test_stage_order(self, orchestrator):
        assert [name for name, _ in orchestrator.stages] == [
            "ensure_user",
            "goals",
            "shifts",
            "allocations",
            "balance",
            "clear_local",
        ]
