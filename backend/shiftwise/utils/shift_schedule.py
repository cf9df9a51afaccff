"""Shift window helpers.

A day shift runs 08:00-20:00 on its scheduled date; a night shift starts at
20:00 and ends at 08:00 the following day. All values are naive UTC.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

from shiftwise.models.shift import ShiftStatus, ShiftType
from shiftwise.utils.datetime_utils import to_naive_utc, utc_now

DAY_SHIFT_START = time(8, 0)
NIGHT_SHIFT_START = time(20, 0)
SHIFT_LENGTH = timedelta(hours=12)


def compute_shift_window(
    scheduled_date: Union[date, datetime, str], shift_type: ShiftType
) -> Tuple[datetime, datetime]:
    """Return (start, end) for a shift on ``scheduled_date``."""
    if isinstance(scheduled_date, (datetime, str)):
        day = to_naive_utc(scheduled_date).date()
    else:
        day = scheduled_date

    start_time = DAY_SHIFT_START if ShiftType(shift_type) == ShiftType.DAY else NIGHT_SHIFT_START
    start = datetime.combine(day, start_time)
    return start, start + SHIFT_LENGTH


def initial_shift_status(
    start: datetime, end: datetime, now: Optional[datetime] = None
) -> ShiftStatus:
    """A shift created while its window is open starts in progress."""
    now = now or utc_now()
    if start <= now < end:
        return ShiftStatus.IN_PROGRESS
    return ShiftStatus.SCHEDULED


def shift_date_bucket(value: Union[datetime, str]) -> date:
    """UTC calendar date of a shift's scheduled date (natural-key component)."""
    return to_naive_utc(value).date()
