from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ...attendance.model import WorkSession


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for timesheet credit)."""

    @abstractmethod
    def credited_hours(self, session: WorkSession, *, now: datetime) -> float:
        raise NotImplementedError

    @abstractmethod
    def open_hours(self, session: WorkSession, *, now: datetime) -> float:
        """Uncapped time elapsed since clock-in for a still-open session."""

        raise NotImplementedError
