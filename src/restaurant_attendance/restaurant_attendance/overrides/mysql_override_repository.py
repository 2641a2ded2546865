from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from ..core.enums import DayOverrideType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import WorkDayOverride
from .repository import DayOverrideRepository

_COLUMNS = """
    override_id, restaurant_id, user_id, work_date, day_type, start_time, end_time,
    hours, notes, created_by, created_at
"""


def _row_to_override(r: dict) -> WorkDayOverride:
    return WorkDayOverride(
        override_id=int(r["override_id"]),
        restaurant_id=int(r["restaurant_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        day_type=DayOverrideType(r["day_type"]),
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        hours=float(r.get("hours") or 0),
        notes=r.get("notes"),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
        created_at=r.get("created_at"),
    )


class MySQLDayOverrideRepository(DayOverrideRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, restaurant_id: int, override_id: int) -> Optional[WorkDayOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_day_overrides WHERE override_id=%s AND restaurant_id=%s",
                (int(override_id), int(restaurant_id)),
            )
            r = fetchone(cur)
            return _row_to_override(r) if r else None

    def get_for_user_and_date(self, restaurant_id: int, user_id: int, work_date: date) -> Optional[WorkDayOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_day_overrides
                WHERE restaurant_id=%s AND user_id=%s AND work_date=%s
                """,
                (int(restaurant_id), int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_override(r) if r else None

    def upsert(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        work_date: date,
        day_type: DayOverrideType,
        start_time: Optional[time],
        end_time: Optional[time],
        hours: float,
        notes: Optional[str],
        created_by: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_day_overrides(
                    restaurant_id, user_id, work_date, day_type, start_time, end_time, hours, notes, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    day_type=VALUES(day_type),
                    start_time=VALUES(start_time),
                    end_time=VALUES(end_time),
                    hours=VALUES(hours),
                    notes=VALUES(notes),
                    created_by=VALUES(created_by)
                """,
                (
                    int(restaurant_id),
                    int(user_id),
                    work_date,
                    day_type.value,
                    start_time,
                    end_time,
                    hours,
                    notes,
                    created_by,
                ),
            )

            # If it was an update, lastrowid can be 0; fetch override_id.
            if cur.lastrowid:
                return int(cur.lastrowid)

            cur.execute(
                "SELECT override_id FROM work_day_overrides WHERE restaurant_id=%s AND user_id=%s AND work_date=%s",
                (int(restaurant_id), int(user_id), work_date),
            )
            r = fetchone(cur)
            return int(r["override_id"]) if r else 0

    def delete(self, restaurant_id: int, override_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM work_day_overrides WHERE override_id=%s AND restaurant_id=%s",
                (int(override_id), int(restaurant_id)),
            )
            return cur.rowcount > 0

    def list_range(
        self, restaurant_id: int, start: date, end: date, user_id: Optional[int] = None
    ) -> Sequence[WorkDayOverride]:
        clauses = ["restaurant_id=%s", "work_date BETWEEN %s AND %s"]
        params: list[object] = [int(restaurant_id), start, end]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_day_overrides WHERE {where} ORDER BY work_date, user_id",
                tuple(params),
            )
            return [_row_to_override(r) for r in fetchall(cur)]
