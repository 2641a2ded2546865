from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import MAX_EVENTS_LIMIT
from ..core.exceptions import NotFoundError
from ..restaurants.repository import RestaurantRepository
from ..schedules.model import StaffSchedule
from ..schedules.repository import ScheduleRepository
from ..users.repository import UserRepository
from .locks import UserLockProvider
from .model import AttendanceEvent, WorkSession
from .reaper import StaleSessionReaper
from .repository import AttendanceEventRepository, WorkSessionRepository


@dataclass(frozen=True)
class UserAttendanceStatus:
    user_id: int
    today: date
    active_session: Optional[WorkSession]
    today_schedule: Optional[StaffSchedule]
    today_sessions: Sequence[WorkSession] = ()
    today_events: Sequence[AttendanceEvent] = ()

    @property
    def is_clocked_in(self) -> bool:
        return self.active_session is not None

    @property
    def can_clock_in(self) -> bool:
        return self.active_session is None

    @property
    def can_clock_out(self) -> bool:
        return self.active_session is not None


class AttendanceStatusService:
    """Where one employee stands today: open session, shift and punches."""

    def __init__(
        self,
        *,
        sessions: WorkSessionRepository,
        events: AttendanceEventRepository,
        schedules: ScheduleRepository,
        users: UserRepository,
        restaurants: RestaurantRepository,
        locks: UserLockProvider,
        reaper: StaleSessionReaper,
    ):
        self._sessions = sessions
        self._events = events
        self._schedules = schedules
        self._users = users
        self._restaurants = restaurants
        self._locks = locks
        self._reaper = reaper

    def for_user(self, restaurant_id: int, user_id: int, *, now: datetime | None = None) -> UserAttendanceStatus:
        user = self._users.get_for_restaurant(restaurant_id, user_id)
        if not user:
            raise NotFoundError("user_not_found", "User not found")
        restaurant = self._restaurants.get_by_id(restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")

        now = now or now_local(restaurant.tz)
        with self._locks.hold(restaurant_id, user.user_id):
            self._reaper.reap_user(restaurant_id, user.user_id, now=now)
            active = self._sessions.list_active(restaurant_id, user.user_id)

        today = now.date()
        day_start = datetime.combine(today, time.min)
        day_end = day_start + timedelta(days=1)
        schedules = self._schedules.list_published_range(restaurant_id, today, today, user_id=user.user_id)
        return UserAttendanceStatus(
            user_id=user.user_id,
            today=today,
            active_session=active[0] if active else None,
            today_schedule=schedules[0] if schedules else None,
            today_sessions=self._sessions.list_for_period(
                restaurant_id, start=day_start, end=day_end, user_id=user.user_id
            ),
            today_events=self._events.list_for_restaurant(
                restaurant_id, start=day_start, end=day_end, user_id=user.user_id, limit=MAX_EVENTS_LIMIT
            ),
        )
