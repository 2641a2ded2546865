from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import ScheduleStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import StaffSchedule
from .repository import ScheduleRepository

_COLUMNS = "schedule_id, restaurant_id, user_id, work_date, start_time, end_time, break_minutes, status"


def _row_to_schedule(r: dict) -> StaffSchedule:
    return StaffSchedule(
        schedule_id=int(r["schedule_id"]),
        restaurant_id=int(r["restaurant_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        break_minutes=int(r.get("break_minutes") or 0),
        status=ScheduleStatus(r["status"]),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_published_for_user_and_date(
        self, restaurant_id: int, user_id: int, work_date: date
    ) -> Optional[StaffSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM staff_schedules
                WHERE restaurant_id=%s AND user_id=%s AND work_date=%s AND status=%s
                ORDER BY start_time
                LIMIT 1
                """,
                (int(restaurant_id), int(user_id), work_date, ScheduleStatus.PUBLISHED.value),
            )
            r = fetchone(cur)
            return _row_to_schedule(r) if r else None

    def list_published_range(
        self, restaurant_id: int, start: date, end: date, user_id: Optional[int] = None
    ) -> Sequence[StaffSchedule]:
        clauses = ["restaurant_id=%s", "work_date BETWEEN %s AND %s", "status=%s"]
        params: list[object] = [int(restaurant_id), start, end, ScheduleStatus.PUBLISHED.value]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM staff_schedules WHERE {where} ORDER BY work_date, user_id",
                tuple(params),
            )
            return [_row_to_schedule(r) for r in fetchall(cur)]
