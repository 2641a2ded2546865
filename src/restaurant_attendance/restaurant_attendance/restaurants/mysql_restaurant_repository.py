from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import DEFAULT_EARLY_MINUTES, DEFAULT_LATE_MINUTES, DEFAULT_TIMEZONE
from ..core.enums import AttendanceMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Restaurant
from .repository import RestaurantRepository


class MySQLRestaurantRepository(RestaurantRepository):
    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        default_timezone: str = DEFAULT_TIMEZONE,
        default_early_minutes: int = DEFAULT_EARLY_MINUTES,
        default_late_minutes: int = DEFAULT_LATE_MINUTES,
    ):
        self._conn_factory = conn_factory
        self._default_timezone = default_timezone
        self._default_early = int(default_early_minutes)
        self._default_late = int(default_late_minutes)

    def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT restaurant_id, name, timezone, attendance_mode,
                       attendance_early_minutes, attendance_late_minutes
                FROM restaurants
                WHERE restaurant_id=%s
                """,
                (int(restaurant_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            early = r.get("attendance_early_minutes")
            late = r.get("attendance_late_minutes")
            return Restaurant(
                restaurant_id=int(r["restaurant_id"]),
                name=r["name"],
                timezone=r.get("timezone") or self._default_timezone,
                attendance_mode=AttendanceMode(r.get("attendance_mode") or AttendanceMode.DISABLED.value),
                attendance_early_minutes=self._default_early if early is None else int(early),
                attendance_late_minutes=self._default_late if late is None else int(late),
            )

    def list_ids(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT restaurant_id FROM restaurants ORDER BY restaurant_id")
            return [int(r["restaurant_id"]) for r in fetchall(cur)]

    def update_attendance_settings(
        self,
        restaurant_id: int,
        *,
        attendance_mode: AttendanceMode,
        attendance_early_minutes: int,
        attendance_late_minutes: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE restaurants
                SET attendance_mode=%s, attendance_early_minutes=%s, attendance_late_minutes=%s
                WHERE restaurant_id=%s
                """,
                (
                    attendance_mode.value,
                    int(attendance_early_minutes),
                    int(attendance_late_minutes),
                    int(restaurant_id),
                ),
            )
            return cur.rowcount > 0
