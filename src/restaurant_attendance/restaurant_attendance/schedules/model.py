from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import hours_between_times
from ..core.constants import DEFAULT_PLANNED_HOURS
from ..core.enums import ScheduleStatus


@dataclass(frozen=True)
class StaffSchedule:
    """A planned shift for one employee on one calendar date.

    Schedules are authored elsewhere; attendance only reads published ones.
    """

    schedule_id: int
    restaurant_id: int
    user_id: int
    work_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    break_minutes: int = 0
    status: ScheduleStatus = ScheduleStatus.PUBLISHED

    @property
    def starts_at(self) -> Optional[datetime]:
        if self.start_time is None:
            return None
        return datetime.combine(self.work_date, self.start_time)

    @property
    def planned_hours(self) -> float:
        if self.start_time is None or self.end_time is None:
            return float(DEFAULT_PLANNED_HOURS)
        hours = hours_between_times(self.start_time, self.end_time) - (self.break_minutes or 0) / 60
        return round(max(hours, 0.0), 2)
