from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import combine_clock_out, compute_hours, now_local
from ..common.validators import optional_text
from ..core.enums import EventType, SessionStatus
from ..core.exceptions import ConcurrencyConflict, ConflictError, NotFoundError, ValidationError
from ..restaurants.repository import RestaurantRepository
from ..users.repository import UserRepository
from .locks import UserLockProvider
from .model import WorkSession, append_note
from .reaper import StaleSessionReaper
from .repository import WorkSessionRepository

logger = logging.getLogger(__name__)

MANUAL_CLOSE_NOTE = "Closed manually"


@dataclass(frozen=True)
class SessionTransition:
    event_type: EventType
    session: WorkSession


class WorkSessionStateMachine:
    """Owns every write to work sessions.

    Device signals never trust the terminal's in/out hint: an open non-manual
    session is closed, otherwise a new one is opened. Manual sessions are only
    changed through the administrative operations.
    """

    def __init__(
        self,
        sessions: WorkSessionRepository,
        users: UserRepository,
        restaurants: RestaurantRepository,
        locks: UserLockProvider,
        reaper: StaleSessionReaper,
    ):
        self._sessions = sessions
        self._users = users
        self._restaurants = restaurants
        self._locks = locks
        self._reaper = reaper

    # --- device path (caller holds the user lock) ---

    def infer_event_type(self, restaurant_id: int, user_id: int) -> EventType:
        open_session = self._sessions.find_active_auto(restaurant_id, user_id)
        return EventType.CLOCK_OUT if open_session else EventType.CLOCK_IN

    def apply_device_signal(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        event_time: datetime,
        expected_type: Optional[EventType] = None,
    ) -> SessionTransition:
        open_session = self._sessions.find_active_auto(restaurant_id, user_id)
        inferred = EventType.CLOCK_OUT if open_session else EventType.CLOCK_IN
        if expected_type is not None and inferred != expected_type:
            raise ConcurrencyConflict("concurrency_conflict", "Open session changed since inference")

        if open_session is None:
            session_id = self._sessions.create(
                restaurant_id=restaurant_id,
                user_id=user_id,
                clock_in=event_time,
                clock_out=None,
                status=SessionStatus.ACTIVE,
            )
            return SessionTransition(EventType.CLOCK_IN, self._get(restaurant_id, session_id))

        if event_time < open_session.clock_in:
            logger.warning(
                "departure before open session clock-in rejected",
                extra={
                    "session_id": open_session.session_id,
                    "clock_in": open_session.clock_in.isoformat(),
                    "event_time": event_time.isoformat(),
                },
            )
            raise ValidationError("clock_out_before_clock_in", "Departure is earlier than the open session's arrival")

        hours = compute_hours(open_session.clock_in, event_time, open_session.break_minutes)
        updated = self._sessions.update(
            session_id=open_session.session_id,
            clock_in=open_session.clock_in,
            clock_out=event_time,
            status=SessionStatus.COMPLETED,
            hours_worked=hours,
            break_minutes=open_session.break_minutes,
            is_manual=False,
            correction_reason=open_session.correction_reason,
            notes=open_session.notes,
            expected_status=SessionStatus.ACTIVE,
        )
        if not updated:
            # Closed by someone else between read and write; the caller retries.
            raise ConcurrencyConflict("concurrency_conflict", "Session changed during update")
        return SessionTransition(EventType.CLOCK_OUT, self._get(restaurant_id, open_session.session_id))

    # --- administrative operations ---

    def list_sessions(
        self,
        restaurant_id: int,
        *,
        start: date,
        end: date,
        user_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> Sequence[WorkSession]:
        self._reaper.reap(restaurant_id, now=now)
        return self._sessions.list_for_period(
            restaurant_id,
            start=datetime.combine(start, time.min),
            end=datetime.combine(end + timedelta(days=1), time.min),
            user_id=user_id,
        )

    def open_manual(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        clock_in: datetime,
        break_minutes: int = 0,
        notes: Optional[str] = None,
    ) -> WorkSession:
        self._require_user(restaurant_id, user_id)
        with self._locks.hold(restaurant_id, user_id):
            if self._sessions.list_active(restaurant_id, user_id):
                raise ConflictError("already_active", "User already has an open session")
            session_id = self._sessions.create(
                restaurant_id=restaurant_id,
                user_id=user_id,
                clock_in=clock_in,
                clock_out=None,
                status=SessionStatus.ACTIVE,
                break_minutes=_break(break_minutes),
                is_manual=True,
                notes=optional_text(notes),
            )
        logger.info("manual session opened", extra={"restaurant_id": restaurant_id, "user_id": user_id})
        return self._get(restaurant_id, session_id)

    def create_manual_range(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        clock_in: datetime,
        clock_out: datetime | time | None = None,
        break_minutes: int = 0,
        notes: Optional[str] = None,
    ) -> WorkSession:
        if clock_out is None:
            return self.open_manual(
                restaurant_id=restaurant_id,
                user_id=user_id,
                clock_in=clock_in,
                break_minutes=break_minutes,
                notes=notes,
            )

        self._require_user(restaurant_id, user_id)
        clock_out = _place_clock_out(clock_in, clock_out)
        break_minutes = _break(break_minutes)
        with self._locks.hold(restaurant_id, user_id):
            session_id = self._sessions.create(
                restaurant_id=restaurant_id,
                user_id=user_id,
                clock_in=clock_in,
                clock_out=clock_out,
                status=SessionStatus.COMPLETED,
                hours_worked=compute_hours(clock_in, clock_out, break_minutes),
                break_minutes=break_minutes,
                is_manual=True,
                notes=optional_text(notes),
            )
        logger.info("manual session created", extra={"restaurant_id": restaurant_id, "user_id": user_id})
        return self._get(restaurant_id, session_id)

    def close_manual(
        self,
        *,
        restaurant_id: int,
        session_id: int,
        clock_out: datetime | time | None = None,
    ) -> WorkSession:
        session = self._get(restaurant_id, session_id)
        with self._locks.hold(restaurant_id, session.user_id):
            session = self._get(restaurant_id, session_id)
            if not session.is_active:
                raise ConflictError("already_closed", "Session is already closed")

            if clock_out is None:
                clock_out = self._now(restaurant_id)
            clock_out = _place_clock_out(session.clock_in, clock_out)
            self._sessions.update(
                session_id=session.session_id,
                clock_in=session.clock_in,
                clock_out=clock_out,
                status=SessionStatus.CORRECTED,
                hours_worked=compute_hours(session.clock_in, clock_out, session.break_minutes),
                break_minutes=session.break_minutes,
                is_manual=True,
                correction_reason=session.correction_reason,
                notes=append_note(session.notes, MANUAL_CLOSE_NOTE),
            )
        logger.info("session closed manually", extra={"restaurant_id": restaurant_id, "session_id": session_id})
        return self._get(restaurant_id, session_id)

    def correct(
        self,
        *,
        restaurant_id: int,
        session_id: int,
        clock_in: datetime | time,
        clock_out: datetime | time | None,
        reason: str,
        break_minutes: Optional[int] = None,
        work_date: Optional[date] = None,
    ) -> WorkSession:
        reason = optional_text(reason)
        if not reason:
            raise ValidationError("reason_required", "A correction reason is required")
        if clock_out is None:
            raise ValidationError("clock_out_required", "Corrected sessions need a clock-out time")

        session = self._get(restaurant_id, session_id)
        with self._locks.hold(restaurant_id, session.user_id):
            session = self._get(restaurant_id, session_id)
            if isinstance(clock_in, time):
                clock_in = datetime.combine(work_date or session.clock_in.date(), clock_in)
            clock_out = _place_clock_out(clock_in, clock_out)
            breaks = session.break_minutes if break_minutes is None else _break(break_minutes)

            self._sessions.update(
                session_id=session.session_id,
                clock_in=clock_in,
                clock_out=clock_out,
                status=SessionStatus.CORRECTED,
                hours_worked=compute_hours(clock_in, clock_out, breaks),
                break_minutes=breaks,
                is_manual=True,
                correction_reason=reason,
                notes=session.notes,
            )
        logger.info("session corrected", extra={"restaurant_id": restaurant_id, "session_id": session_id})
        return self._get(restaurant_id, session_id)

    def delete(self, *, restaurant_id: int, session_id: int) -> None:
        session = self._get(restaurant_id, session_id)
        with self._locks.hold(restaurant_id, session.user_id):
            if not self._sessions.delete(restaurant_id, session_id):
                raise NotFoundError("session_not_found", "Session not found")
        logger.info("session deleted", extra={"restaurant_id": restaurant_id, "session_id": session_id})

    # --- helpers ---

    def _now(self, restaurant_id: int) -> datetime:
        restaurant = self._restaurants.get_by_id(restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")
        return now_local(restaurant.tz)

    def _require_user(self, restaurant_id: int, user_id: int) -> None:
        if not self._users.get_for_restaurant(restaurant_id, user_id):
            raise NotFoundError("user_not_found", "User not found")

    def _get(self, restaurant_id: int, session_id: int) -> WorkSession:
        session = self._sessions.get(restaurant_id, session_id)
        if not session:
            raise NotFoundError("session_not_found", "Session not found")
        return session


def _place_clock_out(clock_in: datetime, clock_out: datetime | time) -> datetime:
    if isinstance(clock_out, datetime):
        return clock_out
    return combine_clock_out(clock_in, clock_out)


def _break(value: Optional[int]) -> int:
    minutes = int(value or 0)
    if minutes < 0:
        raise ValidationError("invalid_break", "break_minutes cannot be negative")
    return minutes
