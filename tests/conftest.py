"""In-memory repositories and a seeded restaurant world shared by the tests.

Seed data (see ``world``):

* restaurant 1 "Pelmeni Bar" (Europe/Moscow), restaurant 2 "Ural Grill" (Asia/Yekaterinburg)
* users 10 Anna (staff), 11 Boris (staff), 12 Olga (owner) in restaurant 1; 20 Ivan (staff) in restaurant 2
* devices in restaurant 1: 1 anviz ANV-001, 2 zkteco ZK-001, 3 hikvision HIK-001, 4 generic GEN-001;
  device 5 generic GEN-R2 in restaurant 2. API key of every device is ``key-<serial>``.
* device user "7" is Anna on devices 1-4 and Ivan on device 5; "8" is Boris on devices 1 and 4.
"""

from __future__ import annotations

import itertools
import threading
from functools import lru_cache
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, time
from typing import Optional

import pytest

from src.restaurant_attendance.restaurant_attendance.attendance.locks import InProcessUserLocks
from src.restaurant_attendance.restaurant_attendance.attendance.model import (
    AttendanceEvent,
    NewAttendanceEvent,
    WorkSession,
)
from src.restaurant_attendance.restaurant_attendance.container import Container, wire_container
from src.restaurant_attendance.restaurant_attendance.core.enums import (
    AttendanceMode,
    DayOverrideType,
    DeviceStatus,
    Role,
    ScheduleStatus,
    SessionStatus,
    VendorType,
)
from src.restaurant_attendance.restaurant_attendance.core.exceptions import ConcurrencyConflict
from src.restaurant_attendance.restaurant_attendance.devices.model import Device, DeviceUserLink
from src.restaurant_attendance.restaurant_attendance.devices.service import hash_api_key
from src.restaurant_attendance.restaurant_attendance.overrides.model import WorkDayOverride
from src.restaurant_attendance.restaurant_attendance.restaurants.model import Restaurant
from src.restaurant_attendance.restaurant_attendance.schedules.model import StaffSchedule
from src.restaurant_attendance.restaurant_attendance.users.model import User


@lru_cache(maxsize=None)
def _seeded_key_hash(serial: str) -> str:
    return hash_api_key(f"key-{serial}")


class InMemoryRestaurants:
    def __init__(self):
        self.restaurants: dict[int, Restaurant] = {}

    def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        return self.restaurants.get(int(restaurant_id))

    def list_ids(self):
        return sorted(self.restaurants)

    def update_attendance_settings(
        self, restaurant_id, *, attendance_mode, attendance_early_minutes, attendance_late_minutes
    ) -> bool:
        restaurant = self.restaurants.get(int(restaurant_id))
        if restaurant is None:
            return False
        self.restaurants[restaurant.restaurant_id] = replace(
            restaurant,
            attendance_mode=attendance_mode,
            attendance_early_minutes=attendance_early_minutes,
            attendance_late_minutes=attendance_late_minutes,
        )
        return True


class InMemoryUsers:
    def __init__(self):
        self.users: dict[int, User] = {}

    def get_for_restaurant(self, restaurant_id: int, user_id: int) -> Optional[User]:
        user = self.users.get(int(user_id))
        if user is None or user.restaurant_id != int(restaurant_id):
            return None
        return user

    def list_active_for_restaurant(self, restaurant_id: int):
        return sorted(
            (u for u in self.users.values() if u.restaurant_id == int(restaurant_id) and u.is_active),
            key=lambda u: u.name,
        )


class InMemoryDevices:
    def __init__(self):
        self.devices: dict[int, Device] = {}

    def get_by_serial(self, serial_number: str) -> Optional[Device]:
        return next((d for d in self.devices.values() if d.serial_number == serial_number), None)

    def get_for_restaurant(self, restaurant_id: int, device_id: int) -> Optional[Device]:
        device = self.devices.get(int(device_id))
        if device is None or device.restaurant_id != int(restaurant_id):
            return None
        return device

    def list_for_restaurant(self, restaurant_id: int):
        return [d for _, d in sorted(self.devices.items()) if d.restaurant_id == int(restaurant_id)]

    def mark_heartbeat(self, *, device_id: int, at: datetime, status: Optional[DeviceStatus] = None) -> bool:
        device = self.devices[device_id]
        self.devices[device_id] = replace(device, last_heartbeat_at=at, status=status or device.status)
        return True

    def set_api_key_hash(self, *, device_id: int, api_key_hash: str) -> bool:
        self.devices[device_id] = replace(self.devices[device_id], api_key_hash=api_key_hash)
        return True


class InMemoryDeviceLinks:
    def __init__(self):
        self.links: dict[int, DeviceUserLink] = {}
        self._ids = itertools.count(1)
        self._guard = threading.Lock()

    def get_by_device_user_id(self, device_id: int, device_user_id: str) -> Optional[DeviceUserLink]:
        return next(
            (l for l in self.links.values() if l.device_id == device_id and l.device_user_id == str(device_user_id)),
            None,
        )

    def get_by_user(self, device_id: int, user_id: int) -> Optional[DeviceUserLink]:
        return next((l for l in self.links.values() if l.device_id == device_id and l.user_id == user_id), None)

    def list_for_device(self, device_id: int):
        return [l for _, l in sorted(self.links.items()) if l.device_id == device_id]

    def list_for_user(self, user_id: int):
        return sorted((l for l in self.links.values() if l.user_id == int(user_id)), key=lambda l: l.device_id)

    def create(self, *, device_id: int, user_id: int, device_user_id: str, synced_at: datetime) -> int:
        with self._guard:
            link_id = next(self._ids)
            self.links[link_id] = DeviceUserLink(
                link_id=link_id,
                device_id=device_id,
                user_id=user_id,
                device_user_id=str(device_user_id),
                is_synced=True,
                synced_at=synced_at,
            )
            return link_id

    def update_enrollment(self, *, link_id: int, **values) -> bool:
        with self._guard:
            self.links[link_id] = replace(self.links[link_id], **values)
            return True

    def delete(self, *, device_id: int, device_user_id: str) -> bool:
        link = self.get_by_device_user_id(device_id, device_user_id)
        if link is None:
            return False
        del self.links[link.link_id]
        return True


class InMemoryEvents:
    def __init__(self):
        self.events: dict[int, AttendanceEvent] = {}
        self._ids = itertools.count(1)
        self._guard = threading.Lock()

    def find_by_vendor_event_id(self, device_id: int, user_id: int, vendor_event_id: str):
        return next(
            (
                e
                for e in self.events.values()
                if e.device_id == device_id and e.user_id == user_id and e.vendor_event_id == vendor_event_id
            ),
            None,
        )

    def create(self, event: NewAttendanceEvent) -> int:
        with self._guard:
            if event.vendor_event_id and event.device_id is not None:
                if self.find_by_vendor_event_id(event.device_id, event.user_id, event.vendor_event_id):
                    raise ConcurrencyConflict("concurrency_conflict", "duplicate vendor event")
            event_id = next(self._ids)
            values = {f.name: getattr(event, f.name) for f in fields(event)}
            self.events[event_id] = AttendanceEvent(event_id=event_id, **values)
            return event_id

    def attach_session(self, *, event_id: int, session_id: int) -> bool:
        self.events[event_id] = replace(self.events[event_id], work_session_id=session_id)
        return True

    def get(self, restaurant_id: int, event_id: int):
        event = self.events.get(int(event_id))
        if event is None or event.restaurant_id != int(restaurant_id):
            return None
        return event

    def list_for_restaurant(self, restaurant_id, *, start=None, end=None, user_id=None, limit=50):
        rows = [
            e
            for e in self.events.values()
            if e.restaurant_id == restaurant_id
            and (start is None or e.event_time >= start)
            and (end is None or e.event_time < end)
            and (user_id is None or e.user_id == user_id)
        ]
        rows.sort(key=lambda e: (e.event_time, e.event_id), reverse=True)
        return rows[:limit]

    def delete(self, restaurant_id: int, event_id: int) -> bool:
        if self.get(restaurant_id, event_id) is None:
            return False
        del self.events[int(event_id)]
        return True


class InMemorySessions:
    """Enforces the same single open device session rule as the MySQL unique key."""

    def __init__(self):
        self.sessions: dict[int, WorkSession] = {}
        self._ids = itertools.count(1)
        self._guard = threading.Lock()

    def get(self, restaurant_id: int, session_id: int):
        session = self.sessions.get(int(session_id))
        if session is None or session.restaurant_id != int(restaurant_id):
            return None
        return session

    def find_active_auto(self, restaurant_id: int, user_id: int):
        open_auto = [
            s
            for s in self.sessions.values()
            if s.restaurant_id == restaurant_id and s.user_id == user_id and s.is_active and not s.is_manual
        ]
        return max(open_auto, key=lambda s: s.clock_in, default=None)

    def list_active(self, restaurant_id: int, user_id: Optional[int] = None):
        return sorted(
            (
                s
                for s in self.sessions.values()
                if s.restaurant_id == restaurant_id and s.is_active and (user_id is None or s.user_id == user_id)
            ),
            key=lambda s: s.clock_in,
        )

    def create(
        self,
        *,
        restaurant_id,
        user_id,
        clock_in,
        clock_out,
        status,
        hours_worked=0.0,
        break_minutes=0,
        is_manual=False,
        notes=None,
    ) -> int:
        with self._guard:
            if status == SessionStatus.ACTIVE and not is_manual and self.find_active_auto(restaurant_id, user_id):
                raise ConcurrencyConflict("concurrency_conflict", "open session exists")
            session_id = next(self._ids)
            self.sessions[session_id] = WorkSession(
                session_id=session_id,
                restaurant_id=restaurant_id,
                user_id=user_id,
                clock_in=clock_in,
                clock_out=clock_out,
                status=status,
                hours_worked=hours_worked,
                break_minutes=break_minutes,
                is_manual=is_manual,
                notes=notes,
            )
            return session_id

    def update(
        self,
        *,
        session_id,
        clock_in,
        clock_out,
        status,
        hours_worked,
        break_minutes,
        is_manual,
        correction_reason=None,
        notes=None,
        expected_status=None,
    ) -> bool:
        with self._guard:
            current = self.sessions.get(session_id)
            if current is None:
                return False
            if expected_status is not None and current.status != expected_status:
                return False
            self.sessions[session_id] = replace(
                current,
                clock_in=clock_in,
                clock_out=clock_out,
                status=status,
                hours_worked=hours_worked,
                break_minutes=break_minutes,
                is_manual=is_manual,
                correction_reason=correction_reason,
                notes=notes,
            )
            return True

    def list_stale_active(self, restaurant_id, *, started_before, user_id=None):
        return [
            s
            for s in self.list_active(restaurant_id, user_id)
            if s.clock_in < started_before
        ]

    def list_for_period(self, restaurant_id, *, start, end, user_id=None):
        return sorted(
            (
                s
                for s in self.sessions.values()
                if s.restaurant_id == restaurant_id
                and start <= s.clock_in < end
                and (user_id is None or s.user_id == user_id)
            ),
            key=lambda s: (s.clock_in, s.session_id),
        )

    def delete(self, restaurant_id: int, session_id: int) -> bool:
        if self.get(restaurant_id, session_id) is None:
            return False
        del self.sessions[int(session_id)]
        return True


class InMemorySchedules:
    def __init__(self):
        self.schedules: list[StaffSchedule] = []

    def get_published_for_user_and_date(self, restaurant_id, user_id, work_date):
        matches = [
            s
            for s in self.schedules
            if s.restaurant_id == restaurant_id
            and s.user_id == user_id
            and s.work_date == work_date
            and s.status == ScheduleStatus.PUBLISHED
        ]
        return min(matches, key=lambda s: s.start_time or time.min, default=None)

    def list_published_range(self, restaurant_id, start, end, user_id=None):
        return [
            s
            for s in self.schedules
            if s.restaurant_id == restaurant_id
            and start <= s.work_date <= end
            and s.status == ScheduleStatus.PUBLISHED
            and (user_id is None or s.user_id == user_id)
        ]


class InMemoryOverrides:
    def __init__(self):
        self.overrides: dict[int, WorkDayOverride] = {}
        self._ids = itertools.count(1)

    def get(self, restaurant_id, override_id):
        o = self.overrides.get(int(override_id))
        if o is None or o.restaurant_id != int(restaurant_id):
            return None
        return o

    def get_for_user_and_date(self, restaurant_id, user_id, work_date):
        return next(
            (
                o
                for o in self.overrides.values()
                if o.restaurant_id == restaurant_id and o.user_id == user_id and o.work_date == work_date
            ),
            None,
        )

    def upsert(self, *, restaurant_id, user_id, work_date, day_type, start_time, end_time, hours, notes, created_by):
        existing = self.get_for_user_and_date(restaurant_id, user_id, work_date)
        override_id = existing.override_id if existing else next(self._ids)
        self.overrides[override_id] = WorkDayOverride(
            override_id=override_id,
            restaurant_id=restaurant_id,
            user_id=user_id,
            work_date=work_date,
            day_type=day_type,
            start_time=start_time,
            end_time=end_time,
            hours=hours,
            notes=notes,
            created_by=created_by,
        )
        return override_id

    def delete(self, restaurant_id, override_id) -> bool:
        if self.get(restaurant_id, override_id) is None:
            return False
        del self.overrides[int(override_id)]
        return True

    def list_range(self, restaurant_id, start, end, user_id=None):
        return [
            o
            for o in self.overrides.values()
            if o.restaurant_id == restaurant_id
            and start <= o.work_date <= end
            and (user_id is None or o.user_id == user_id)
        ]


@dataclass
class World:
    restaurants: InMemoryRestaurants
    users: InMemoryUsers
    devices: InMemoryDevices
    links: InMemoryDeviceLinks
    events: InMemoryEvents
    sessions: InMemorySessions
    schedules: InMemorySchedules
    overrides: InMemoryOverrides
    container: Container

    def set_mode(self, restaurant_id: int, mode: AttendanceMode, *, early: int = 30, late: int = 120) -> None:
        self.restaurants.restaurants[restaurant_id] = replace(
            self.restaurants.restaurants[restaurant_id],
            attendance_mode=mode,
            attendance_early_minutes=early,
            attendance_late_minutes=late,
        )

    def add_user(self, user_id: int, restaurant_id: int, name: str, role: Role = Role.STAFF, **kw) -> User:
        user = User(user_id=user_id, restaurant_id=restaurant_id, name=name, role=role, **kw)
        self.users.users[user_id] = user
        return user

    def add_device(self, device_id: int, restaurant_id: int, vendor: VendorType, serial: str) -> Device:
        device = Device(
            device_id=device_id,
            restaurant_id=restaurant_id,
            name=f"{vendor.value} terminal",
            vendor=vendor,
            serial_number=serial,
            api_key_hash=_seeded_key_hash(serial),
        )
        self.devices.devices[device_id] = device
        return device

    def link(self, device_id: int, user_id: int, device_user_id: str) -> int:
        return self.links.create(
            device_id=device_id, user_id=user_id, device_user_id=device_user_id, synced_at=datetime(2025, 1, 1)
        )

    def add_schedule(
        self,
        user_id: int,
        work_date: date,
        start: Optional[time] = time(10, 0),
        end: Optional[time] = time(18, 0),
        *,
        restaurant_id: int = 1,
        break_minutes: int = 0,
        status: ScheduleStatus = ScheduleStatus.PUBLISHED,
    ) -> StaffSchedule:
        schedule = StaffSchedule(
            schedule_id=len(self.schedules.schedules) + 1,
            restaurant_id=restaurant_id,
            user_id=user_id,
            work_date=work_date,
            start_time=start,
            end_time=end,
            break_minutes=break_minutes,
            status=status,
        )
        self.schedules.schedules.append(schedule)
        return schedule

    def add_session(
        self,
        user_id: int,
        clock_in: datetime,
        clock_out: Optional[datetime] = None,
        *,
        restaurant_id: int = 1,
        status: Optional[SessionStatus] = None,
        hours: float = 0.0,
        is_manual: bool = False,
    ) -> WorkSession:
        if status is None:
            status = SessionStatus.ACTIVE if clock_out is None else SessionStatus.COMPLETED
        session_id = self.sessions.create(
            restaurant_id=restaurant_id,
            user_id=user_id,
            clock_in=clock_in,
            clock_out=clock_out,
            status=status,
            hours_worked=hours,
            is_manual=is_manual,
        )
        return self.sessions.sessions[session_id]

    def add_override(self, user_id: int, work_date: date, day_type: DayOverrideType, hours: float) -> int:
        return self.overrides.upsert(
            restaurant_id=1,
            user_id=user_id,
            work_date=work_date,
            day_type=day_type,
            start_time=None,
            end_time=None,
            hours=hours,
            notes=None,
            created_by=12,
        )


def build_world() -> World:
    restaurants = InMemoryRestaurants()
    users = InMemoryUsers()
    devices = InMemoryDevices()
    links = InMemoryDeviceLinks()
    events = InMemoryEvents()
    sessions = InMemorySessions()
    schedules = InMemorySchedules()
    overrides = InMemoryOverrides()

    container = wire_container(
        restaurants_repo=restaurants,
        users_repo=users,
        devices_repo=devices,
        links_repo=links,
        events_repo=events,
        sessions_repo=sessions,
        schedules_repo=schedules,
        overrides_repo=overrides,
        locks=InProcessUserLocks(),
    )
    world = World(restaurants, users, devices, links, events, sessions, schedules, overrides, container)

    restaurants.restaurants[1] = Restaurant(restaurant_id=1, name="Pelmeni Bar", timezone="Europe/Moscow")
    restaurants.restaurants[2] = Restaurant(restaurant_id=2, name="Ural Grill", timezone="Asia/Yekaterinburg")

    world.add_user(10, 1, "Anna")
    world.add_user(11, 1, "Boris")
    world.add_user(12, 1, "Olga", Role.OWNER)
    world.add_user(20, 2, "Ivan")

    world.add_device(1, 1, VendorType.ANVIZ, "ANV-001")
    world.add_device(2, 1, VendorType.ZKTECO, "ZK-001")
    world.add_device(3, 1, VendorType.HIKVISION, "HIK-001")
    world.add_device(4, 1, VendorType.GENERIC, "GEN-001")
    world.add_device(5, 2, VendorType.GENERIC, "GEN-R2")

    for device_id in (1, 2, 3, 4):
        world.link(device_id, 10, "7")
    world.link(1, 11, "8")
    world.link(4, 11, "8")
    world.link(5, 20, "7")
    return world


@pytest.fixture
def world() -> World:
    return build_world()


@pytest.fixture
def app(world, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from src.restaurant_attendance.restaurant_attendance.main import create_app

    flask_app = create_app(container=world.container)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def backoffice(client):
    """Client signed in as the owner of restaurant 1."""
    with client.session_transaction() as sess:
        sess["user_id"] = 12
        sess["restaurant_id"] = 1
        sess["role"] = Role.OWNER.value
    return client
