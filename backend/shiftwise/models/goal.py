"""Savings goal model."""

import enum
import uuid
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)

from shiftwise.core.database import Base
from shiftwise.core.db_types import UUID
from shiftwise.utils.datetime_utils import utc_now_lambda


class GoalStatus(str, enum.Enum):
    """Goal lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    HIDDEN = "hidden"


class Goal(Base):
    """Savings goal funded from shift earnings."""

    __tablename__ = "goals"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(200), nullable=False)
    icon_key = Column(String(50), default="target", nullable=False)
    icon_color = Column(String(20), default="#3B82F6", nullable=False)
    icon_bg_color = Column(String(20), default="#E0E7FF", nullable=False)

    target_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    status = Column(
        SQLEnum(
            GoalStatus,
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=GoalStatus.ACTIVE,
        nullable=False,
    )
    is_primary = Column(Boolean, default=False, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    allocation_percentage = Column(Integer, default=0, nullable=False)  # 0-100

    deadline = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    __table_args__ = (
        Index("ix_goals_user_name_target", "user_id", "name", "target_amount"),
        Index("ix_goals_user_status", "user_id", "status"),
    )
