from __future__ import annotations

from dataclasses import dataclass
from zoneinfo import ZoneInfo

from ..common.datetime_utils import zone_for
from ..core.constants import DEFAULT_EARLY_MINUTES, DEFAULT_LATE_MINUTES, DEFAULT_TIMEZONE
from ..core.enums import AttendanceMode


@dataclass(frozen=True)
class Restaurant:
    """Tenant whose local clock and attendance policy govern every event."""

    restaurant_id: int
    name: str
    timezone: str = DEFAULT_TIMEZONE
    attendance_mode: AttendanceMode = AttendanceMode.DISABLED
    attendance_early_minutes: int = DEFAULT_EARLY_MINUTES
    attendance_late_minutes: int = DEFAULT_LATE_MINUTES

    @property
    def tz(self) -> ZoneInfo:
        return zone_for(self.timezone)
