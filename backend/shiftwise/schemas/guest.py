"""Request schemas for the guest-mode API."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from shiftwise.models.goal import GoalStatus
from shiftwise.models.shift import OperationType, ShiftType
from shiftwise.schemas.migration import CamelModel


class GoalCreate(CamelModel):
    """Schema for creating a guest goal."""

    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0)
    icon_key: Optional[str] = None
    icon_color: Optional[str] = None
    icon_bg_color: Optional[str] = None
    deadline: Optional[datetime] = None


class GoalUpdate(CamelModel):
    """Schema for updating a guest goal; only the fields sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    target_amount: Optional[Decimal] = Field(None, gt=0)
    current_amount: Optional[Decimal] = Field(None, ge=0)
    icon_key: Optional[str] = None
    icon_color: Optional[str] = None
    icon_bg_color: Optional[str] = None
    status: Optional[GoalStatus] = None
    is_primary: Optional[bool] = None
    order_index: Optional[int] = None
    allocation_percentage: Optional[int] = Field(None, ge=0, le=100)
    deadline: Optional[datetime] = None


class GoalReorder(CamelModel):
    """New goal order, first id first."""

    goal_ids: List[str]


class ShiftCreate(CamelModel):
    """Schema for scheduling a guest shift."""

    operation_type: OperationType
    shift_type: ShiftType
    scheduled_date: datetime


class EarningsAllocation(CamelModel):
    goal_id: str
    amount: Decimal = Field(..., ge=0)


class RecordEarningsRequest(CamelModel):
    """Earnings for a completed shift and how they are split across goals."""

    total_earnings: Decimal = Field(..., ge=0)
    allocations: List[EarningsAllocation] = Field(default_factory=list)
