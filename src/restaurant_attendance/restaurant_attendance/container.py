from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.dedup import EventDeduplicator
from .attendance.event_service import AttendanceEventService
from .attendance.locks import InProcessUserLocks, MySQLUserLocks, UserLockProvider
from .attendance.mysql_attendance_repository import MySQLAttendanceEventRepository, MySQLWorkSessionRepository
from .attendance.policy import AttendancePolicy
from .attendance.reaper import StaleSessionReaper
from .attendance.repository import AttendanceEventRepository, WorkSessionRepository
from .attendance.state_machine import WorkSessionStateMachine
from .attendance.status_service import AttendanceStatusService
from .core.constants import (
    DEFAULT_EARLY_MINUTES,
    DEFAULT_LATE_MINUTES,
    DEFAULT_TIMEZONE,
    DEVICE_ONLINE_MINUTES,
    MAX_SESSION_HOURS,
    SESSION_LOCK_TIMEOUT_SECONDS,
)
from .database.connection import DBConfig, DatabaseConnection
from .devices.mysql_device_repository import MySQLDeviceRepository, MySQLDeviceUserLinkRepository
from .devices.repository import DeviceRepository, DeviceUserLinkRepository
from .devices.service import DeviceRegistry, DeviceUserLinkService
from .ingest.factory import VendorNormalizerFactory
from .ingest.service import IngestionService
from .overrides.mysql_override_repository import MySQLDayOverrideRepository
from .overrides.repository import DayOverrideRepository
from .overrides.service import DayOverrideService
from .restaurants.mysql_restaurant_repository import MySQLRestaurantRepository
from .restaurants.repository import RestaurantRepository
from .restaurants.service import AttendanceSettingsService
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .timesheet.service import TimesheetService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    restaurants_repo: RestaurantRepository
    users_repo: UserRepository
    devices_repo: DeviceRepository
    links_repo: DeviceUserLinkRepository
    events_repo: AttendanceEventRepository
    sessions_repo: WorkSessionRepository
    schedules_repo: ScheduleRepository
    overrides_repo: DayOverrideRepository
    locks: UserLockProvider

    device_registry: DeviceRegistry
    link_service: DeviceUserLinkService
    reaper: StaleSessionReaper
    state_machine: WorkSessionStateMachine
    ingestion_service: IngestionService
    event_service: AttendanceEventService
    override_service: DayOverrideService
    timesheet_service: TimesheetService
    settings_service: AttendanceSettingsService
    status_service: AttendanceStatusService

    device_online_minutes: int = DEVICE_ONLINE_MINUTES


def wire_container(
    *,
    restaurants_repo: RestaurantRepository,
    users_repo: UserRepository,
    devices_repo: DeviceRepository,
    links_repo: DeviceUserLinkRepository,
    events_repo: AttendanceEventRepository,
    sessions_repo: WorkSessionRepository,
    schedules_repo: ScheduleRepository,
    overrides_repo: DayOverrideRepository,
    locks: UserLockProvider,
    max_session_hours: int = MAX_SESSION_HOURS,
    device_online_minutes: int = DEVICE_ONLINE_MINUTES,
    normalizers: Optional[VendorNormalizerFactory] = None,
) -> Container:
    """Assemble services on top of any repository implementations."""
    device_registry = DeviceRegistry(devices_repo, restaurants_repo)
    link_service = DeviceUserLinkService(links_repo, users_repo, device_registry)
    reaper = StaleSessionReaper(sessions_repo, restaurants_repo, locks, max_session_hours=max_session_hours)
    state_machine = WorkSessionStateMachine(sessions_repo, users_repo, restaurants_repo, locks, reaper)
    ingestion_service = IngestionService(
        normalizers=normalizers or VendorNormalizerFactory(),
        registry=device_registry,
        links=link_service,
        restaurants=restaurants_repo,
        policy=AttendancePolicy(schedules_repo),
        dedup=EventDeduplicator(events_repo),
        state_machine=state_machine,
        reaper=reaper,
        events=events_repo,
        locks=locks,
    )
    timesheet_service = TimesheetService(
        users=users_repo,
        sessions=sessions_repo,
        schedules=schedules_repo,
        overrides=overrides_repo,
        restaurants=restaurants_repo,
        reaper=reaper,
    )

    return Container(
        restaurants_repo=restaurants_repo,
        users_repo=users_repo,
        devices_repo=devices_repo,
        links_repo=links_repo,
        events_repo=events_repo,
        sessions_repo=sessions_repo,
        schedules_repo=schedules_repo,
        overrides_repo=overrides_repo,
        locks=locks,
        device_registry=device_registry,
        link_service=link_service,
        reaper=reaper,
        state_machine=state_machine,
        ingestion_service=ingestion_service,
        event_service=AttendanceEventService(events_repo, users_repo),
        override_service=DayOverrideService(overrides_repo, users_repo),
        timesheet_service=timesheet_service,
        settings_service=AttendanceSettingsService(restaurants_repo),
        status_service=AttendanceStatusService(
            sessions=sessions_repo,
            events=events_repo,
            schedules=schedules_repo,
            users=users_repo,
            restaurants=restaurants_repo,
            locks=locks,
            reaper=reaper,
        ),
        device_online_minutes=int(device_online_minutes),
    )


def build_container(
    *,
    db_config: dict,
    lock_backend: str = "local",
    lock_timeout: int = SESSION_LOCK_TIMEOUT_SECONDS,
    max_session_hours: int = MAX_SESSION_HOURS,
    device_online_minutes: int = DEVICE_ONLINE_MINUTES,
    default_timezone: str = DEFAULT_TIMEZONE,
    default_early_minutes: int = DEFAULT_EARLY_MINUTES,
    default_late_minutes: int = DEFAULT_LATE_MINUTES,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    if lock_backend == "mysql":
        locks: UserLockProvider = MySQLUserLocks(conn, timeout_seconds=lock_timeout)
    elif lock_backend == "local":
        locks = InProcessUserLocks()
    else:
        raise ValueError(f"Unknown SESSION_LOCK_BACKEND: {lock_backend}")

    return wire_container(
        restaurants_repo=MySQLRestaurantRepository(
            conn,
            default_timezone=default_timezone,
            default_early_minutes=default_early_minutes,
            default_late_minutes=default_late_minutes,
        ),
        users_repo=MySQLUserRepository(conn),
        devices_repo=MySQLDeviceRepository(conn),
        links_repo=MySQLDeviceUserLinkRepository(conn),
        events_repo=MySQLAttendanceEventRepository(conn),
        sessions_repo=MySQLWorkSessionRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        overrides_repo=MySQLDayOverrideRepository(conn),
        locks=locks,
        max_session_hours=max_session_hours,
        device_online_minutes=device_online_minutes,
    )
