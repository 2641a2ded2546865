from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from ..attendance.model import WorkSession
from ..attendance.reaper import StaleSessionReaper
from ..attendance.repository import WorkSessionRepository
from ..common.datetime_utils import format_hours, iter_days, month_bounds, now_local
from ..core.constants import DEFAULT_PLANNED_HOURS, UNCLOSED_NOTICE_HOURS
from ..core.enums import SessionStatus
from ..core.exceptions import NotFoundError
from ..overrides.model import WorkDayOverride
from ..overrides.repository import DayOverrideRepository
from ..restaurants.repository import RestaurantRepository
from ..schedules.model import StaffSchedule
from ..schedules.repository import ScheduleRepository
from ..users.model import User
from ..users.repository import UserRepository
from .calculator.base import HoursCalculator
from .calculator.standard_calculator import StandardHoursCalculator


@dataclass(frozen=True)
class MonthlyTimesheet:
    year: int
    month: int
    days_in_month: int
    employees: list[dict]
    unclosed_sessions: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "days_in_month": self.days_in_month,
            "employees": self.employees,
            "unclosed_sessions": self.unclosed_sessions,
        }


@dataclass(frozen=True)
class UserTimesheet:
    user: dict
    year: int
    month: int
    calendar: list[dict]
    summary: dict

    def to_dict(self) -> dict:
        return {
            "user": self.user,
            "year": self.year,
            "month": self.month,
            "calendar": self.calendar,
            "summary": self.summary,
        }


@dataclass
class _Day:
    hours: float = 0.0
    has_active: bool = False
    has_auto_closed: bool = False
    override: Optional[WorkDayOverride] = None
    sessions: list[dict] = field(default_factory=list)


def _hours_summary(worked: float, planned: float, days_worked: int) -> dict:
    underworked = max(planned - worked, 0.0)
    return {
        "total_worked": round(worked, 2),
        "total_worked_formatted": format_hours(worked),
        "days_worked": days_worked,
        "total_planned": round(planned, 2),
        "total_planned_formatted": format_hours(planned),
        "underworked": round(underworked, 2),
        "underworked_formatted": format_hours(underworked),
    }


def override_to_dict(o: WorkDayOverride) -> dict:
    return {
        "id": o.override_id,
        "user_id": o.user_id,
        "date": o.work_date.isoformat(),
        "type": o.day_type.value,
        "start_time": o.start_time.strftime("%H:%M") if o.start_time else None,
        "end_time": o.end_time.strftime("%H:%M") if o.end_time else None,
        "hours": round(o.hours, 2),
        "notes": o.notes,
    }


class TimesheetService:
    """Monthly hour totals per employee, derived from sessions, shifts and day overrides.

    Every read reaps stale sessions first so abandoned badge-ins never show as
    open time.
    """

    def __init__(
        self,
        *,
        users: UserRepository,
        sessions: WorkSessionRepository,
        schedules: ScheduleRepository,
        overrides: DayOverrideRepository,
        restaurants: RestaurantRepository,
        reaper: StaleSessionReaper,
        calculator: Optional[HoursCalculator] = None,
    ):
        self._users = users
        self._sessions = sessions
        self._schedules = schedules
        self._overrides = overrides
        self._restaurants = restaurants
        self._reaper = reaper
        self._calculator = calculator or StandardHoursCalculator()

    def _now(self, restaurant_id: int) -> datetime:
        restaurant = self._restaurants.get_by_id(restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")
        return now_local(restaurant.tz)

    def monthly(
        self,
        restaurant_id: int,
        year: int,
        month: int,
        *,
        user_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> MonthlyTimesheet:
        start, end = month_bounds(year, month)
        now = now or self._now(restaurant_id)
        self._reaper.reap(restaurant_id, now=now)

        users = [u for u in self._users.list_active_for_restaurant(restaurant_id) if not u.is_privileged]
        if user_id is not None:
            users = [u for u in users if u.user_id == int(user_id)]

        sessions = self._group(self._sessions.list_for_period(
            restaurant_id,
            start=datetime.combine(start, time.min),
            end=datetime.combine(end + timedelta(days=1), time.min),
            user_id=user_id,
        ))
        schedules = self._group(self._schedules.list_published_range(restaurant_id, start, end, user_id=user_id))
        overrides = self._group(self._overrides.list_range(restaurant_id, start, end, user_id=user_id))
        open_users = {s.user_id for s in self._sessions.list_active(restaurant_id, user_id)}

        employees: list[dict] = []
        unclosed: list[dict] = []
        for user in users:
            days = self._days(user, start, end, sessions[user.user_id], overrides[user.user_id], now, unclosed)

            daily_hours: dict[str, dict] = {}
            worked = 0.0
            days_worked = 0
            for day, info in days.items():
                if info.hours > 0 or info.has_active or info.has_auto_closed:
                    daily_hours[str(day.day)] = {
                        "hours": round(info.hours, 2),
                        "formatted": format_hours(info.hours),
                        "has_override": info.override is not None,
                        "has_active": info.has_active,
                        "has_auto_closed": info.has_auto_closed,
                    }
                worked += info.hours
                if info.hours > 0:
                    days_worked += 1

            planned = self.planned_hours(start, end, schedules[user.user_id], overrides[user.user_id])
            employees.append(
                {
                    "id": user.user_id,
                    "name": user.name,
                    "role": user.role.value,
                    "daily_hours": daily_hours,
                    "has_active_session": user.user_id in open_users,
                    **_hours_summary(worked, planned, days_worked),
                }
            )

        return MonthlyTimesheet(
            year=int(year),
            month=int(month),
            days_in_month=end.day,
            employees=employees,
            unclosed_sessions=unclosed,
        )

    def per_user(
        self,
        restaurant_id: int,
        user_id: int,
        year: int,
        month: int,
        *,
        now: datetime | None = None,
    ) -> UserTimesheet:
        start, end = month_bounds(year, month)
        user = self._users.get_for_restaurant(restaurant_id, user_id)
        if not user:
            raise NotFoundError("user_not_found", "User not found")

        now = now or self._now(restaurant_id)
        self._reaper.reap(restaurant_id, now=now)

        sessions = self._sessions.list_for_period(
            restaurant_id,
            start=datetime.combine(start, time.min),
            end=datetime.combine(end + timedelta(days=1), time.min),
            user_id=user.user_id,
        )
        schedules = self._schedules.list_published_range(restaurant_id, start, end, user_id=user.user_id)
        overrides = self._overrides.list_range(restaurant_id, start, end, user_id=user.user_id)

        days = self._days(user, start, end, sessions, overrides, now, [])
        calendar: list[dict] = []
        worked = 0.0
        days_worked = 0
        for day, info in days.items():
            calendar.append(
                {
                    "date": day.isoformat(),
                    "day": day.day,
                    "weekday": day.isoweekday(),
                    "is_weekend": day.weekday() >= 5,
                    "hours": round(info.hours, 2),
                    "formatted": format_hours(info.hours) if info.hours > 0 else None,
                    "has_active": info.has_active,
                    "has_auto_closed": info.has_auto_closed,
                    "sessions": info.sessions,
                    "override": override_to_dict(info.override) if info.override else None,
                }
            )
            worked += info.hours
            if info.hours > 0:
                days_worked += 1

        planned = self.planned_hours(start, end, schedules, overrides)
        return UserTimesheet(
            user={"id": user.user_id, "name": user.name, "role": user.role.value},
            year=int(year),
            month=int(month),
            calendar=calendar,
            summary=_hours_summary(worked, planned, days_worked),
        )

    @staticmethod
    def planned_hours(
        start: date,
        end: date,
        schedules: Sequence[StaffSchedule],
        overrides: Sequence[WorkDayOverride],
    ) -> float:
        """A day override replaces that day's plan.

        Without any published shift in the period every weekday plans a
        standard day.
        """
        by_day_override = {o.work_date: o for o in overrides}
        by_day_schedule: dict[date, float] = defaultdict(float)
        for s in schedules:
            by_day_schedule[s.work_date] += s.planned_hours

        total = 0.0
        for day in iter_days(start, end):
            if day in by_day_override:
                total += by_day_override[day].hours
            elif by_day_schedule:
                total += by_day_schedule.get(day, 0.0)
            elif day.weekday() < 5:
                total += DEFAULT_PLANNED_HOURS
        return round(total, 2)

    def _days(
        self,
        user: User,
        start: date,
        end: date,
        sessions: Sequence[WorkSession],
        overrides: Sequence[WorkDayOverride],
        now: datetime,
        unclosed: list[dict],
    ) -> dict[date, _Day]:
        days = {day: _Day() for day in iter_days(start, end)}
        for o in overrides:
            if o.work_date in days:
                days[o.work_date].override = o

        for s in sessions:
            info = days.get(s.clock_in.date())
            if info is None:
                continue
            hours = self._calculator.credited_hours(s, now=now)
            if s.status == SessionStatus.ACTIVE:
                info.has_active = True
                open_for = self._calculator.open_hours(s, now=now)
                if open_for > UNCLOSED_NOTICE_HOURS:
                    unclosed.append(
                        {
                            "session_id": s.session_id,
                            "user_id": user.user_id,
                            "user_name": user.name,
                            "clock_in": s.clock_in.isoformat(),
                            "hours_open": round(open_for, 1),
                            "date": s.clock_in.date().isoformat(),
                        }
                    )
            elif s.status == SessionStatus.AUTO_CLOSED:
                info.has_auto_closed = True
            info.hours += hours
            info.sessions.append(
                {
                    "id": s.session_id,
                    "clock_in": s.clock_in.strftime("%H:%M"),
                    "clock_out": s.clock_out.strftime("%H:%M") if s.clock_out else None,
                    "hours": round(hours, 2),
                    "status": s.status.value,
                    "is_manual": s.is_manual,
                    "is_overnight": s.is_overnight,
                    "is_active": s.is_active,
                    "is_auto_closed": s.status == SessionStatus.AUTO_CLOSED,
                }
            )

        for info in days.values():
            if info.override is not None and not info.has_active:
                info.hours = float(info.override.hours)
            info.hours = max(info.hours, 0.0)
        return days

    @staticmethod
    def _group(items) -> defaultdict:
        grouped: defaultdict = defaultdict(list)
        for item in items:
            grouped[item.user_id].append(item)
        return grouped
