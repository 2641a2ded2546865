from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from ..common.datetime_utils import hours_between_times
from ..common.validators import optional_text, require_range
from ..core.constants import DEFAULT_PLANNED_HOURS
from ..core.enums import DAY_TYPES_WITH_HOURS, DayOverrideType
from ..core.exceptions import NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import WorkDayOverride
from .repository import DayOverrideRepository

logger = logging.getLogger(__name__)

_DEFAULT_HOURS_TYPES = frozenset({DayOverrideType.VACATION, DayOverrideType.SICK_LEAVE})


def derive_override_hours(
    day_type: DayOverrideType,
    *,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    hours: Optional[float] = None,
) -> float:
    """Hours a day override credits.

    Explicit hours win, then the start/end span (overnight aware), then 8h for
    paid leave. Days off and absences are always zero.
    """
    if day_type not in DAY_TYPES_WITH_HOURS:
        return 0.0
    if hours is not None:
        return round(float(require_range(float(hours), "hours", 0, 24)), 2)
    if start_time is not None and end_time is not None:
        return hours_between_times(start_time, end_time)
    if day_type in _DEFAULT_HOURS_TYPES:
        return float(DEFAULT_PLANNED_HOURS)
    return 0.0


class DayOverrideService:
    def __init__(self, overrides: DayOverrideRepository, users: UserRepository):
        self._overrides = overrides
        self._users = users

    def upsert(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        work_date: date,
        day_type: str | DayOverrideType,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        hours: Optional[float] = None,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> WorkDayOverride:
        try:
            day_type = DayOverrideType(day_type)
        except ValueError:
            raise ValidationError("invalid_day_type", f"Unknown day type: {day_type}")

        if not self._users.get_for_restaurant(restaurant_id, user_id):
            raise NotFoundError("user_not_found", "User not found")

        credited = derive_override_hours(day_type, start_time=start_time, end_time=end_time, hours=hours)
        if day_type not in DAY_TYPES_WITH_HOURS:
            start_time = end_time = None

        override_id = self._overrides.upsert(
            restaurant_id=int(restaurant_id),
            user_id=int(user_id),
            work_date=work_date,
            day_type=day_type,
            start_time=start_time,
            end_time=end_time,
            hours=credited,
            notes=optional_text(notes),
            created_by=created_by,
        )
        logger.info(
            "day override saved",
            extra={"restaurant_id": restaurant_id, "user_id": user_id, "work_date": str(work_date), "type": day_type.value},
        )
        return self._overrides.get(restaurant_id, override_id)

    def delete(self, *, restaurant_id: int, override_id: int) -> None:
        if not self._overrides.delete(int(restaurant_id), int(override_id)):
            raise NotFoundError("override_not_found", "Day override not found")
