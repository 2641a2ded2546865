from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import StaffSchedule


class ScheduleRepository(Protocol):
    def get_published_for_user_and_date(
        self, restaurant_id: int, user_id: int, work_date: date
    ) -> Optional[StaffSchedule]:
        raise NotImplementedError

    def list_published_range(
        self, restaurant_id: int, start: date, end: date, user_id: Optional[int] = None
    ) -> Sequence[StaffSchedule]:
        """Published shifts with ``start <= work_date <= end``."""

        raise NotImplementedError
