from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..core.enums import AttendanceMode, EventSource, EventType
from ..core.exceptions import PolicyViolation
from ..restaurants.model import Restaurant
from ..schedules.model import StaffSchedule
from ..schedules.repository import ScheduleRepository

_CHANNELS = {
    AttendanceMode.DEVICE_ONLY: frozenset({EventSource.DEVICE}),
    AttendanceMode.QR_ONLY: frozenset({EventSource.QR_CODE}),
    AttendanceMode.DEVICE_OR_QR: frozenset({EventSource.DEVICE, EventSource.QR_CODE}),
}


class AttendancePolicy:
    """Decides whether a clock signal is acceptable at a given local time.

    Only arrivals are held to the shift window; departures pass once the
    channel is allowed.
    """

    def __init__(self, schedules: ScheduleRepository):
        self._schedules = schedules

    def check_allowed(
        self,
        restaurant: Restaurant,
        user_id: int,
        event_time: datetime,
        *,
        source: EventSource = EventSource.DEVICE,
        event_type: EventType = EventType.CLOCK_IN,
    ) -> Optional[StaffSchedule]:
        """Return the matched shift (None when no shift is needed) or raise PolicyViolation."""
        mode = restaurant.attendance_mode
        if mode == AttendanceMode.DISABLED:
            return None

        if source not in _CHANNELS.get(mode, frozenset()):
            raise PolicyViolation("mode_not_allowed", f"Attendance via {source.value} is not allowed ({mode.value})")

        if event_type != EventType.CLOCK_IN:
            return None

        schedule = self._schedules.get_published_for_user_and_date(
            restaurant.restaurant_id, user_id, event_time.date()
        )
        if not schedule:
            raise PolicyViolation("no_schedule", "No published shift for today")

        shift_start = schedule.starts_at
        if shift_start is None:
            return schedule

        earliest = shift_start - timedelta(minutes=restaurant.attendance_early_minutes)
        latest = shift_start + timedelta(minutes=restaurant.attendance_late_minutes)
        if event_time < earliest:
            raise PolicyViolation("too_early", f"Clock-in opens at {earliest.strftime('%H:%M')}")
        if event_time > latest:
            raise PolicyViolation("too_late", f"Clock-in closed at {latest.strftime('%H:%M')}")
        return schedule
