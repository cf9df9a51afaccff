"""SQLAlchemy models package."""

from shiftwise.models.user import User
from shiftwise.models.goal import Goal, GoalStatus
from shiftwise.models.shift import Shift, ShiftStatus, ShiftType, OperationType
from shiftwise.models.goal_allocation import GoalAllocation
from shiftwise.models.notification import Notification, NotificationType

__all__ = [
    "User",
    "Goal",
    "GoalStatus",
    "Shift",
    "ShiftStatus",
    "ShiftType",
    "OperationType",
    "GoalAllocation",
    "Notification",
    "NotificationType",
]
