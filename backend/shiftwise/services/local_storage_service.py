"""Guest-mode data service backed by the device key-value store."""

import json
import logging
import uuid
from datetime import datetime, time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from pydantic import ValidationError

from shiftwise.models.goal import GoalStatus
from shiftwise.models.shift import OperationType, ShiftStatus, ShiftType
from shiftwise.schemas.local_data import (
    LOCAL_USER_ID,
    LocalGoal,
    LocalGoalAllocation,
    LocalRecord,
    LocalShift,
    LocalUser,
)
from shiftwise.services.key_value_store import KeyValueStore
from shiftwise.utils.datetime_utils import to_naive_utc, utc_now
from shiftwise.utils.shift_schedule import compute_shift_window, initial_shift_status

logger = logging.getLogger(__name__)

KEY_USER = "@local_user"
KEY_GOALS = "@local_goals"
KEY_SHIFTS = "@local_shifts"
KEY_GOAL_ALLOCATIONS = "@local_goal_allocations"
KEY_HAS_LOCAL_DATA = "@has_local_data"

ALL_LOCAL_KEYS = (KEY_USER, KEY_GOALS, KEY_SHIFTS, KEY_GOAL_ALLOCATIONS, KEY_HAS_LOCAL_DATA)

R = TypeVar("R", bound=LocalRecord)


def _new_local_id() -> str:
    return str(uuid.uuid4())


def _apply(record: R, changes: Dict[str, Any]) -> R:
    """Return a re-validated copy of ``record`` with ``changes`` applied."""
    return type(record).model_validate({**record.model_dump(), **changes})


class LocalStorageService:
    """
    Reads and writes guest data as one JSON array per collection.

    Unreadable blobs (bad JSON, wrong shape) read as empty collections and
    individual malformed records are dropped; both are logged. Backend
    failures propagate as ``LocalStoreError``.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ------------------------------------------------------------------
    # Blob helpers
    # ------------------------------------------------------------------

    async def _read_collection(self, key: str, model: Type[R]) -> List[R]:
        raw = await self.store.get(key)
        if not raw:
            return []

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Unreadable local collection {key}: {e}")
            return []

        if not isinstance(items, list):
            logger.warning(f"Local collection {key} is not a list, ignoring")
            return []

        records = []
        for item in items:
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping malformed record in {key}: {e.error_count()} error(s)")
        return records

    async def _write_collection(self, key: str, records: Iterable[LocalRecord]) -> None:
        await self.store.set(key, json.dumps([r.to_blob() for r in records]))

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    async def peek_user(self) -> Optional[LocalUser]:
        """Return the stored guest user without creating one."""
        raw = await self.store.get(KEY_USER)
        if not raw:
            return None
        try:
            return LocalUser.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Unreadable local user: {e.error_count()} error(s)")
            return None

    async def get_user(self) -> LocalUser:
        """Return the guest user, creating it with a zero balance on first read."""
        user = await self.peek_user()
        if user is not None:
            return user

        user = LocalUser(id=LOCAL_USER_ID, created_at=utc_now())
        await self.store.set(KEY_USER, json.dumps(user.to_blob()))
        return user

    async def update_user(self, **changes) -> LocalUser:
        user = _apply(await self.get_user(), changes)
        await self.store.set(KEY_USER, json.dumps(user.to_blob()))
        if "balance" in changes:
            await self.mark_has_local_data()
        return user

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    async def get_goals(self) -> List[LocalGoal]:
        return await self._read_collection(KEY_GOALS, LocalGoal)

    async def create_goal(
        self,
        name: str,
        target_amount: Union[Decimal, str, float],
        icon_key: Optional[str] = None,
        icon_color: Optional[str] = None,
        icon_bg_color: Optional[str] = None,
        deadline=None,
    ) -> LocalGoal:
        """Create an active goal placed after every existing goal."""
        goals = await self.get_goals()
        max_order = max((g.order_index for g in goals), default=0)
        now = utc_now()

        goal = LocalGoal(
            id=_new_local_id(),
            user_id=LOCAL_USER_ID,
            name=name,
            icon_key=icon_key or "target",
            icon_color=icon_color or "#3B82F6",
            icon_bg_color=icon_bg_color or "#E0E7FF",
            target_amount=Decimal(str(target_amount)),
            current_amount=Decimal("0"),
            status=GoalStatus.ACTIVE,
            is_primary=False,
            order_index=max_order + 1,
            allocation_percentage=0,
            deadline=deadline,
            completed_at=None,
            created_at=now,
            updated_at=now,
        )
        goals.append(goal)
        await self._write_collection(KEY_GOALS, goals)
        await self.mark_has_local_data()
        return goal

    async def update_goal(self, goal_id: str, **changes) -> Optional[LocalGoal]:
        """Apply ``changes`` to a goal; returns None when the goal does not exist."""
        goals = await self.get_goals()
        for index, goal in enumerate(goals):
            if goal.id == goal_id:
                break
        else:
            return None

        if "status" in changes and GoalStatus(changes["status"]) == GoalStatus.COMPLETED:
            changes.setdefault("completed_at", utc_now())
        changes["updated_at"] = utc_now()

        goals[index] = _apply(goal, changes)
        await self._write_collection(KEY_GOALS, goals)
        await self.mark_has_local_data()
        return goals[index]

    async def delete_goal(self, goal_id: str) -> bool:
        goals = await self.get_goals()
        remaining = [g for g in goals if g.id != goal_id]
        if len(remaining) == len(goals):
            return False
        await self._write_collection(KEY_GOALS, remaining)
        return True

    async def set_primary_goal(self, goal_id: str) -> bool:
        """Make ``goal_id`` the only primary goal."""
        goals = await self.get_goals()
        if not any(g.id == goal_id for g in goals):
            return False

        now = utc_now()
        updated = []
        for goal in goals:
            should_be_primary = goal.id == goal_id
            if goal.is_primary != should_be_primary:
                goal = _apply(goal, {"is_primary": should_be_primary, "updated_at": now})
            updated.append(goal)

        await self._write_collection(KEY_GOALS, updated)
        await self.mark_has_local_data()
        return True

    async def reorder_goals(self, goal_ids: Sequence[str]) -> List[LocalGoal]:
        """Set each listed goal's order index to its position; unknown ids are ignored."""
        positions = {goal_id: i for i, goal_id in enumerate(goal_ids)}
        goals = await self.get_goals()
        now = utc_now()

        updated = [
            _apply(g, {"order_index": positions[g.id], "updated_at": now}) if g.id in positions else g
            for g in goals
        ]
        await self._write_collection(KEY_GOALS, updated)
        await self.mark_has_local_data()
        return sorted(updated, key=lambda g: g.order_index)

    # ------------------------------------------------------------------
    # Shifts
    # ------------------------------------------------------------------

    async def get_shifts(self) -> List[LocalShift]:
        return await self._read_collection(KEY_SHIFTS, LocalShift)

    async def create_shift(
        self,
        operation_type: OperationType,
        shift_type: ShiftType,
        scheduled_date,
    ) -> LocalShift:
        """Schedule a shift; its window is derived from the date and shift type."""
        if isinstance(scheduled_date, (datetime, str)):
            scheduled_date = to_naive_utc(scheduled_date)
        else:
            scheduled_date = datetime.combine(scheduled_date, time())
        start, end = compute_shift_window(scheduled_date, shift_type)
        now = utc_now()

        shift = LocalShift(
            id=_new_local_id(),
            user_id=LOCAL_USER_ID,
            operation_type=operation_type,
            shift_type=shift_type,
            scheduled_date=scheduled_date,
            scheduled_start=start,
            scheduled_end=end,
            status=initial_shift_status(start, end, now),
            earnings=None,
            earnings_recorded_at=None,
            created_at=now,
            updated_at=now,
        )
        shifts = await self.get_shifts()
        shifts.append(shift)
        await self._write_collection(KEY_SHIFTS, shifts)
        await self.mark_has_local_data()
        return shift

    async def update_shift(self, shift_id: str, **changes) -> Optional[LocalShift]:
        shifts = await self.get_shifts()
        for index, shift in enumerate(shifts):
            if shift.id == shift_id:
                break
        else:
            return None

        changes["updated_at"] = utc_now()
        shifts[index] = _apply(shift, changes)
        await self._write_collection(KEY_SHIFTS, shifts)
        await self.mark_has_local_data()
        return shifts[index]

    async def cancel_shift(self, shift_id: str) -> Optional[LocalShift]:
        return await self.update_shift(shift_id, status=ShiftStatus.CANCELED)

    async def delete_shift(self, shift_id: str) -> bool:
        shifts = await self.get_shifts()
        remaining = [s for s in shifts if s.id != shift_id]
        if len(remaining) == len(shifts):
            return False
        await self._write_collection(KEY_SHIFTS, remaining)
        return True

    # ------------------------------------------------------------------
    # Earnings and allocations
    # ------------------------------------------------------------------

    async def record_earnings(
        self,
        shift_id: str,
        total: Decimal,
        allocations: Sequence[Tuple[str, Decimal]],
    ) -> Optional[LocalShift]:
        """
        Complete a shift and distribute its earnings.

        Each ``(goal_id, amount)`` pair becomes an allocation and raises the
        goal's current amount, capped at its target; a goal reaching its target
        is completed. Whatever is not allocated is credited to the balance.

        Args:
            shift_id: Guest shift id
            total: Total earnings for the shift
            allocations: ``(goal_id, amount)`` pairs

        Returns:
            The completed shift, or None if it does not exist

        Raises:
            ValueError: If an amount is negative, a goal is unknown, or the
                allocations exceed the total
        """
        total = Decimal(str(total))
        amounts = [(goal_id, Decimal(str(amount))) for goal_id, amount in allocations]
        allocated = sum((amount for _, amount in amounts), Decimal("0"))

        if total < 0 or any(amount < 0 for _, amount in amounts):
            raise ValueError("Earnings and allocation amounts must not be negative")
        if allocated > total:
            raise ValueError(f"Allocations ({allocated}) exceed total earnings ({total})")

        goals = {g.id: g for g in await self.get_goals()}
        unknown = [goal_id for goal_id, _ in amounts if goal_id not in goals]
        if unknown:
            raise ValueError(f"Unknown goal id(s): {', '.join(unknown)}")

        now = utc_now()
        shift = await self.update_shift(
            shift_id,
            status=ShiftStatus.COMPLETED,
            earnings=total,
            earnings_recorded_at=now,
        )
        if shift is None:
            return None

        for goal_id, amount in amounts:
            await self.create_goal_allocation(shift_id=shift_id, goal_id=goal_id, amount=amount)

            goal = goals[goal_id]
            new_amount = min(goal.current_amount + amount, goal.target_amount)
            changes: Dict[str, Any] = {"current_amount": new_amount, "updated_at": now}
            if new_amount >= goal.target_amount:
                changes["status"] = GoalStatus.COMPLETED
                changes["completed_at"] = now
            goals[goal_id] = _apply(goal, changes)

        await self._write_collection(KEY_GOALS, goals.values())

        remainder = total - allocated
        if remainder > 0:
            user = await self.get_user()
            await self.update_user(balance=user.balance + remainder)

        return shift

    async def get_goal_allocations(self) -> List[LocalGoalAllocation]:
        return await self._read_collection(KEY_GOAL_ALLOCATIONS, LocalGoalAllocation)

    async def create_goal_allocation(
        self, shift_id: str, goal_id: str, amount: Decimal
    ) -> LocalGoalAllocation:
        allocation = LocalGoalAllocation(
            id=_new_local_id(),
            shift_id=shift_id,
            goal_id=goal_id,
            amount=Decimal(str(amount)),
            created_at=utc_now(),
        )
        allocations = await self.get_goal_allocations()
        allocations.append(allocation)
        await self._write_collection(KEY_GOAL_ALLOCATIONS, allocations)
        await self.mark_has_local_data()
        return allocation

    # ------------------------------------------------------------------
    # Flags and bulk operations
    # ------------------------------------------------------------------

    async def local_data_flag_set(self) -> bool:
        return await self.store.get(KEY_HAS_LOCAL_DATA) == "true"

    async def has_local_data(self) -> bool:
        """True when the flag is set and at least one goal or shift exists."""
        if not await self.local_data_flag_set():
            return False
        return bool(await self.get_goals()) or bool(await self.get_shifts())

    async def mark_has_local_data(self) -> None:
        await self.store.set(KEY_HAS_LOCAL_DATA, "true")

    async def get_all_local_data(self) -> Dict[str, Any]:
        return {
            "user": await self.peek_user(),
            "goals": await self.get_goals(),
            "shifts": await self.get_shifts(),
            "allocations": await self.get_goal_allocations(),
        }

    async def clear_all_local_data(self) -> None:
        await self.store.multi_remove(list(ALL_LOCAL_KEYS))
        logger.info("All local data cleared")
