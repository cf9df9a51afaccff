"""Goal allocation (shift earnings routed to a goal)."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric

from shiftwise.core.database import Base
from shiftwise.core.db_types import UUID
from shiftwise.utils.datetime_utils import utc_now_lambda


class GoalAllocation(Base):
    """Portion of one shift's earnings credited to one goal."""

    __tablename__ = "goal_allocations"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    shift_id = Column(
        UUID(),
        ForeignKey("shifts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    goal_id = Column(
        UUID(),
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    __table_args__ = (Index("ix_goal_allocations_shift_goal", "shift_id", "goal_id"),)
