from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceMode
from .model import Restaurant


class RestaurantRepository(Protocol):
    def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        raise NotImplementedError

    def list_ids(self) -> Sequence[int]:
        raise NotImplementedError

    def update_attendance_settings(
        self,
        restaurant_id: int,
        *,
        attendance_mode: AttendanceMode,
        attendance_early_minutes: int,
        attendance_late_minutes: int,
    ) -> bool:
        raise NotImplementedError
