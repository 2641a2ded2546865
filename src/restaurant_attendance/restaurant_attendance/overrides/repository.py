from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from ..core.enums import DayOverrideType
from .model import WorkDayOverride


class DayOverrideRepository(Protocol):
    def get(self, restaurant_id: int, override_id: int) -> Optional[WorkDayOverride]:
        raise NotImplementedError

    def get_for_user_and_date(self, restaurant_id: int, user_id: int, work_date: date) -> Optional[WorkDayOverride]:
        raise NotImplementedError

    def upsert(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        work_date: date,
        day_type: DayOverrideType,
        start_time: Optional[time],
        end_time: Optional[time],
        hours: float,
        notes: Optional[str],
        created_by: Optional[int],
    ) -> int:
        """Create or replace the override for (restaurant, user, date).

        Returns override_id.
        """

        raise NotImplementedError

    def delete(self, restaurant_id: int, override_id: int) -> bool:
        raise NotImplementedError

    def list_range(
        self, restaurant_id: int, start: date, end: date, user_id: Optional[int] = None
    ) -> Sequence[WorkDayOverride]:
        raise NotImplementedError
