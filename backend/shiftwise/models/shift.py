"""Work shift model."""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Index, Numeric

from shiftwise.core.database import Base
from shiftwise.core.db_types import UUID
from shiftwise.utils.datetime_utils import utc_now_lambda


def _enum_values(members):
    return [m.value for m in members]


class OperationType(str, enum.Enum):
    """Warehouse operation worked during the shift."""

    RETURNS = "returns"
    RECEIVING = "receiving"


class ShiftType(str, enum.Enum):
    """Day shifts run 08:00-20:00, night shifts 20:00-08:00 the next day."""

    DAY = "day"
    NIGHT = "night"


class ShiftStatus(str, enum.Enum):
    """Shift lifecycle status."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"
    NO_SHOW = "no_show"


class Shift(Base):
    """A scheduled or worked shift and the earnings recorded for it."""

    __tablename__ = "shifts"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    operation_type = Column(
        SQLEnum(OperationType, native_enum=False, values_callable=_enum_values), nullable=False
    )
    shift_type = Column(
        SQLEnum(ShiftType, native_enum=False, values_callable=_enum_values), nullable=False
    )

    scheduled_date = Column(DateTime, nullable=False)
    scheduled_start = Column(DateTime, nullable=False)
    scheduled_end = Column(DateTime, nullable=False)

    status = Column(
        SQLEnum(ShiftStatus, native_enum=False, values_callable=_enum_values),
        default=ShiftStatus.SCHEDULED,
        nullable=False,
    )
    earnings = Column(Numeric(12, 2), nullable=True)
    earnings_recorded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    __table_args__ = (
        Index("ix_shifts_user_scheduled_date", "user_id", "scheduled_date"),
        Index("ix_shifts_user_status", "user_id", "status"),
    )
