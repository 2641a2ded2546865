from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import DayOverrideType


@dataclass(frozen=True)
class WorkDayOverride:
    """Whole-day classification that replaces the day's computed hours."""

    override_id: int
    restaurant_id: int
    user_id: int
    work_date: date
    day_type: DayOverrideType
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    hours: float = 0.0
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
