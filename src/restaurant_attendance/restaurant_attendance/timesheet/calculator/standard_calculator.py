from __future__ import annotations

from datetime import datetime

from ...attendance.model import WorkSession
from ...core.constants import ACTIVE_SESSION_CAP_HOURS
from ...core.enums import SessionStatus
from .base import HoursCalculator


class StandardHoursCalculator(HoursCalculator):
    """Standard rule: closed sessions count their stored hours, auto-closed count nothing,
    open sessions count elapsed time up to a cap.
    """

    def __init__(self, *, active_cap_hours: float = ACTIVE_SESSION_CAP_HOURS):
        self._cap = float(active_cap_hours)

    def open_hours(self, session: WorkSession, *, now: datetime) -> float:
        return max((now - session.clock_in).total_seconds() / 3600, 0.0)

    def credited_hours(self, session: WorkSession, *, now: datetime) -> float:
        if session.status == SessionStatus.AUTO_CLOSED:
            return 0.0
        if session.status == SessionStatus.ACTIVE:
            return round(min(self.open_hours(session, now=now), self._cap), 2)
        return max(float(session.hours_worked or 0), 0.0)
