"""Guest-to-cloud migration schemas."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shiftwise.schemas.local_data import (
    LocalGoal,
    LocalGoalAllocation,
    LocalShift,
    Money,
    Timestamp,
)
from shiftwise.utils.datetime_utils import utc_now


class CamelModel(BaseModel):
    """Base for API payloads exchanged with the mobile client (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MigrationSnapshot(CamelModel):
    """Immutable point-in-time copy of guest data captured before migration."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    balance: Money = Decimal("0")
    goals: Tuple[LocalGoal, ...] = ()
    shifts: Tuple[LocalShift, ...] = ()
    allocations: Tuple[LocalGoalAllocation, ...] = ()
    captured_at: Timestamp = Field(default_factory=utc_now)

    @property
    def is_present(self) -> bool:
        """A snapshot counts only with at least one goal or shift, or a positive balance."""
        return bool(self.goals) or bool(self.shifts) or self.balance > 0


class SkippedEntity(CamelModel):
    """A guest record that was not written to the cloud, and why."""

    entity_type: str
    local_id: str
    reason: str


class MigrationResult(CamelModel):
    """Summary of one migration attempt."""

    success: bool
    migrated_goals: int = 0
    migrated_shifts: int = 0
    migrated_allocations: int = 0
    matched_goals: int = 0
    matched_shifts: int = 0
    matched_allocations: int = 0
    skipped: List[SkippedEntity] = Field(default_factory=list)
    error: Optional[str] = None


class AuthEventType(str, Enum):
    """Auth lifecycle events forwarded by the auth provider."""

    SIGNED_IN = "signed_in"
    SIGNED_UP = "signed_up"
    SESSION_RESTORED = "session_restored"
    AUTH_STATE_CHANGED = "auth_state_changed"
    SIGNED_OUT = "signed_out"


class AuthEventRequest(CamelModel):
    """Auth provider callback that may trigger a migration."""

    event: AuthEventType
    user_id: UUID
    is_anonymous: bool = False
    snapshot: Optional[MigrationSnapshot] = None


class AuthEventResponse(CamelModel):
    """Outcome of an auth event: a result when a migration ran, otherwise the reason it did not."""

    triggered: bool
    result: Optional[MigrationResult] = None
    reason: Optional[str] = None


class PendingMigrationResponse(CamelModel):
    """Preview of what a migration would upload right now."""

    has_local_data: bool
    goals: int = 0
    shifts: int = 0
    allocations: int = 0
    balance: Money = Decimal("0")
    captured_at: Optional[datetime] = None
