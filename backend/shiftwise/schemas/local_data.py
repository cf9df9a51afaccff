"""Guest-mode record schemas.

These mirror the JSON blobs the device keeps in its key-value store. Keys are
camelCase on the wire (``targetAmount``, ``scheduledDate``...) and snake_case
in Python. Records are frozen: edits go through ``model_copy(update=...)``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from shiftwise.models.goal import GoalStatus
from shiftwise.models.shift import OperationType, ShiftStatus, ShiftType
from shiftwise.utils.datetime_utils import to_iso_z, to_naive_utc, utc_now

LOCAL_USER_ID = "local-user-00000000"

# Device blobs store plain JSON numbers and ISO strings; timestamps are held as naive UTC
Money = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]
Timestamp = Annotated[
    datetime,
    AfterValidator(to_naive_utc),
    PlainSerializer(to_iso_z, return_type=str, when_used="json"),
]


def normalize_goal_status(value: Any) -> GoalStatus:
    """
    Single normalisation point for goal statuses coming from the guest store.

    ``hidden`` is preserved; anything unrecognised becomes ``active``.
    """
    if isinstance(value, GoalStatus):
        return value
    try:
        return GoalStatus(str(value).strip().lower())
    except ValueError:
        return GoalStatus.ACTIVE


class LocalRecord(BaseModel):
    """Base for guest-store records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_blob(self) -> dict:
        """Serialise to the camelCase JSON-ready dict stored on the device."""
        return self.model_dump(mode="json", by_alias=True)


class LocalUser(LocalRecord):
    """Guest user; there is exactly one, identified by a fixed sentinel id."""

    id: str = LOCAL_USER_ID
    username: str = "local_user"
    balance: Money = Decimal("0")
    created_at: Timestamp = Field(default_factory=utc_now)


class LocalGoal(LocalRecord):
    """Guest savings goal."""

    id: str
    user_id: str = LOCAL_USER_ID
    name: str
    icon_key: str = "target"
    icon_color: str = "#3B82F6"
    icon_bg_color: str = "#E0E7FF"
    target_amount: Money
    current_amount: Money = Decimal("0")
    status: GoalStatus = GoalStatus.ACTIVE
    is_primary: bool = False
    order_index: int = 0
    allocation_percentage: int = 0
    deadline: Optional[Timestamp] = None
    completed_at: Optional[Timestamp] = None
    created_at: Timestamp = Field(default_factory=utc_now)
    updated_at: Timestamp = Field(default_factory=utc_now)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> GoalStatus:
        return normalize_goal_status(v)


class LocalShift(LocalRecord):
    """Guest shift."""

    id: str
    user_id: str = LOCAL_USER_ID
    operation_type: OperationType
    shift_type: ShiftType
    scheduled_date: Timestamp
    scheduled_start: Timestamp
    scheduled_end: Timestamp
    status: ShiftStatus = ShiftStatus.SCHEDULED
    earnings: Optional[Money] = None
    earnings_recorded_at: Optional[Timestamp] = None
    created_at: Timestamp = Field(default_factory=utc_now)
    updated_at: Timestamp = Field(default_factory=utc_now)


class LocalGoalAllocation(LocalRecord):
    """Guest allocation of shift earnings to a goal."""

    id: str
    shift_id: str
    goal_id: str
    amount: Money
    created_at: Timestamp = Field(default_factory=utc_now)
