from __future__ import annotations

import logging
from typing import Any, Optional

from ..core.constants import MAX_EARLY_MINUTES, MAX_LATE_MINUTES
from ..core.enums import AttendanceMode
from ..core.exceptions import NotFoundError, ValidationError
from .model import Restaurant
from .repository import RestaurantRepository

logger = logging.getLogger(__name__)

MODE_LABELS = {
    AttendanceMode.DISABLED: "Disabled (free mode)",
    AttendanceMode.DEVICE_ONLY: "Terminal only",
    AttendanceMode.QR_ONLY: "QR code only",
    AttendanceMode.DEVICE_OR_QR: "Terminal or QR code",
}


def parse_attendance_mode(value: Any) -> AttendanceMode:
    try:
        return AttendanceMode(value)
    except (TypeError, ValueError):
        raise ValidationError("invalid_attendance_mode", f"Unknown attendance mode: {value!r}")


def _minutes(value: Optional[int], field_name: str, high: int) -> Optional[int]:
    if value is None:
        return None
    if value < 0 or value > high:
        raise ValidationError("validation_error", f"{field_name} must be between 0 and {high}")
    return int(value)


class AttendanceSettingsService:
    """Reads and changes the restaurant-wide attendance policy."""

    def __init__(self, restaurants: RestaurantRepository):
        self._restaurants = restaurants

    def get(self, restaurant_id: int) -> Restaurant:
        restaurant = self._restaurants.get_by_id(restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")
        return restaurant

    def update(
        self,
        restaurant_id: int,
        *,
        attendance_mode: Any = None,
        early_minutes: Optional[int] = None,
        late_minutes: Optional[int] = None,
    ) -> Restaurant:
        """Change only the supplied fields; the rest keep their stored values."""
        current = self.get(restaurant_id)

        mode = current.attendance_mode if attendance_mode in (None, "") else parse_attendance_mode(attendance_mode)
        early = _minutes(early_minutes, "attendance_early_minutes", MAX_EARLY_MINUTES)
        late = _minutes(late_minutes, "attendance_late_minutes", MAX_LATE_MINUTES)

        self._restaurants.update_attendance_settings(
            current.restaurant_id,
            attendance_mode=mode,
            attendance_early_minutes=current.attendance_early_minutes if early is None else early,
            attendance_late_minutes=current.attendance_late_minutes if late is None else late,
        )
        updated = self.get(restaurant_id)
        logger.info(
            "attendance settings updated",
            extra={
                "restaurant_id": updated.restaurant_id,
                "attendance_mode": updated.attendance_mode.value,
                "early_minutes": updated.attendance_early_minutes,
                "late_minutes": updated.attendance_late_minutes,
            },
        )
        return updated
