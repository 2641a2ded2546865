from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SessionStatus
from .model import AttendanceEvent, NewAttendanceEvent, WorkSession


class AttendanceEventRepository(Protocol):
    """Append-only log of accepted clock signals."""

    def find_by_vendor_event_id(self, device_id: int, user_id: int, vendor_event_id: str) -> Optional[AttendanceEvent]:
        raise NotImplementedError

    def create(self, event: NewAttendanceEvent) -> int:
        """Insert and return event_id.

        Raises ConcurrencyConflict when (device, user, vendor_event_id) already exists.
        """

        raise NotImplementedError

    def attach_session(self, *, event_id: int, session_id: int) -> bool:
        raise NotImplementedError

    def get(self, restaurant_id: int, event_id: int) -> Optional[AttendanceEvent]:
        raise NotImplementedError

    def list_for_restaurant(
        self,
        restaurant_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        user_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AttendanceEvent]:
        """Newest first, ``start <= event_time < end``."""

        raise NotImplementedError

    def delete(self, restaurant_id: int, event_id: int) -> bool:
        raise NotImplementedError


class WorkSessionRepository(Protocol):
    def get(self, restaurant_id: int, session_id: int) -> Optional[WorkSession]:
        raise NotImplementedError

    def find_active_auto(self, restaurant_id: int, user_id: int) -> Optional[WorkSession]:
        """The open session a device signal may close (``is_manual`` false)."""

        raise NotImplementedError

    def list_active(self, restaurant_id: int, user_id: Optional[int] = None) -> Sequence[WorkSession]:
        raise NotImplementedError

    def create(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        clock_in: datetime,
        clock_out: Optional[datetime],
        status: SessionStatus,
        hours_worked: float = 0.0,
        break_minutes: int = 0,
        is_manual: bool = False,
        notes: Optional[str] = None,
    ) -> int:
        """Insert and return session_id.

        Raises ConcurrencyConflict when the user already has an open non-manual session.
        """

        raise NotImplementedError

    def update(
        self,
        *,
        session_id: int,
        clock_in: datetime,
        clock_out: Optional[datetime],
        status: SessionStatus,
        hours_worked: float,
        break_minutes: int,
        is_manual: bool,
        correction_reason: Optional[str] = None,
        notes: Optional[str] = None,
        expected_status: Optional[SessionStatus] = None,
    ) -> bool:
        """Overwrite the mutable columns.

        With ``expected_status`` the row is only touched if it still has that
        status; returns False otherwise.
        """

        raise NotImplementedError

    def list_stale_active(
        self, restaurant_id: int, *, started_before: datetime, user_id: Optional[int] = None
    ) -> Sequence[WorkSession]:
        raise NotImplementedError

    def list_for_period(
        self, restaurant_id: int, *, start: datetime, end: datetime, user_id: Optional[int] = None
    ) -> Sequence[WorkSession]:
        """Sessions with ``start <= clock_in < end`` ordered by clock_in."""

        raise NotImplementedError

    def delete(self, restaurant_id: int, session_id: int) -> bool:
        raise NotImplementedError
