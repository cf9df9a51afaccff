"""Guest-mode API endpoints (data kept in the device key-value store)."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from shiftwise.dependencies import get_local_storage_service
from shiftwise.schemas.guest import (
    GoalCreate,
    GoalReorder,
    GoalUpdate,
    RecordEarningsRequest,
    ShiftCreate,
)
from shiftwise.schemas.local_data import LocalGoal, LocalShift, LocalUser
from shiftwise.services.local_storage_service import LocalStorageService

router = APIRouter()


@router.get("/user", response_model=LocalUser)
async def get_guest_user(
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Get the guest user and balance."""
    return await local_storage.get_user()


@router.get("/goals", response_model=List[LocalGoal])
async def list_goals(
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """List guest goals in display order."""
    goals = await local_storage.get_goals()
    return sorted(goals, key=lambda g: g.order_index)


@router.post("/goals", response_model=LocalGoal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    payload: GoalCreate,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Create a guest goal."""
    return await local_storage.create_goal(
        name=payload.name,
        target_amount=payload.target_amount,
        icon_key=payload.icon_key,
        icon_color=payload.icon_color,
        icon_bg_color=payload.icon_bg_color,
        deadline=payload.deadline,
    )


@router.put("/goals/reorder", response_model=List[LocalGoal])
async def reorder_goals(
    payload: GoalReorder,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Reorder goals; each goal's order index becomes its position in the list."""
    return await local_storage.reorder_goals(payload.goal_ids)


@router.patch("/goals/{goal_id}", response_model=LocalGoal)
async def update_goal(
    goal_id: str,
    payload: GoalUpdate,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Update a guest goal."""
    goal = await local_storage.update_goal(goal_id, **payload.model_dump(exclude_unset=True))
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


@router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: str,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Delete a guest goal."""
    if not await local_storage.delete_goal(goal_id):
        raise HTTPException(status_code=404, detail="Goal not found")


@router.post("/goals/{goal_id}/primary", response_model=List[LocalGoal])
async def set_primary_goal(
    goal_id: str,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Make a goal the primary goal; any other primary goal is cleared."""
    if not await local_storage.set_primary_goal(goal_id):
        raise HTTPException(status_code=404, detail="Goal not found")
    goals = await local_storage.get_goals()
    return sorted(goals, key=lambda g: g.order_index)


@router.get("/shifts", response_model=List[LocalShift])
async def list_shifts(
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """List guest shifts, earliest first."""
    shifts = await local_storage.get_shifts()
    return sorted(shifts, key=lambda s: s.scheduled_start)


@router.post("/shifts", response_model=LocalShift, status_code=status.HTTP_201_CREATED)
async def create_shift(
    payload: ShiftCreate,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Schedule a guest shift."""
    return await local_storage.create_shift(
        operation_type=payload.operation_type,
        shift_type=payload.shift_type,
        scheduled_date=payload.scheduled_date,
    )


@router.post("/shifts/{shift_id}/cancel", response_model=LocalShift)
async def cancel_shift(
    shift_id: str,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Cancel a guest shift."""
    shift = await local_storage.cancel_shift(shift_id)
    if shift is None:
        raise HTTPException(status_code=404, detail="Shift not found")
    return shift


@router.post("/shifts/{shift_id}/earnings", response_model=LocalShift)
async def record_earnings(
    shift_id: str,
    payload: RecordEarningsRequest,
    local_storage: LocalStorageService = Depends(get_local_storage_service),
):
    """Record a shift's earnings and split them across goals; the rest goes to the balance."""
    try:
        shift = await local_storage.record_earnings(
            shift_id,
            payload.total_earnings,
            [(a.goal_id, a.amount) for a in payload.allocations],
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if shift is None:
        raise HTTPException(status_code=404, detail="Shift not found")
    return shift
