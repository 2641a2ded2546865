from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import EventSource, EventType, SessionStatus, VerificationMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from .model import AttendanceEvent, NewAttendanceEvent, WorkSession
from .repository import AttendanceEventRepository, WorkSessionRepository

_EVENT_COLUMNS = """
    event_id, restaurant_id, user_id, device_id, work_session_id, event_type, source,
    verification_method, event_time, latitude, longitude, confidence, vendor_event_id,
    raw_payload, notes, created_at
"""

_SESSION_COLUMNS = """
    session_id, restaurant_id, user_id, clock_in, clock_out, status, hours_worked,
    break_minutes, is_manual, correction_reason, notes
"""


def _opt_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _row_to_event(r: dict) -> AttendanceEvent:
    return AttendanceEvent(
        event_id=int(r["event_id"]),
        restaurant_id=int(r["restaurant_id"]),
        user_id=int(r["user_id"]),
        device_id=int(r["device_id"]) if r.get("device_id") is not None else None,
        work_session_id=int(r["work_session_id"]) if r.get("work_session_id") is not None else None,
        event_type=EventType(r["event_type"]),
        source=EventSource(r["source"]),
        verification_method=VerificationMethod(r["verification_method"]),
        event_time=r["event_time"],
        latitude=_opt_float(r.get("latitude")),
        longitude=_opt_float(r.get("longitude")),
        confidence=_opt_float(r.get("confidence")),
        vendor_event_id=r.get("vendor_event_id"),
        raw_payload=from_json(r.get("raw_payload")),
        notes=r.get("notes"),
        created_at=r.get("created_at"),
    )


def _row_to_session(r: dict) -> WorkSession:
    return WorkSession(
        session_id=int(r["session_id"]),
        restaurant_id=int(r["restaurant_id"]),
        user_id=int(r["user_id"]),
        clock_in=r["clock_in"],
        clock_out=r.get("clock_out"),
        status=SessionStatus(r["status"]),
        hours_worked=float(r.get("hours_worked") or 0),
        break_minutes=int(r.get("break_minutes") or 0),
        is_manual=bool(r.get("is_manual")),
        correction_reason=r.get("correction_reason"),
        notes=r.get("notes"),
    )


class MySQLAttendanceEventRepository(AttendanceEventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_vendor_event_id(self, device_id: int, user_id: int, vendor_event_id: str) -> Optional[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM attendance_events
                WHERE device_id=%s AND user_id=%s AND vendor_event_id=%s
                """,
                (int(device_id), int(user_id), str(vendor_event_id)),
            )
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def create(self, event: NewAttendanceEvent) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_events(
                    restaurant_id, user_id, device_id, work_session_id, event_type, source,
                    verification_method, event_time, latitude, longitude, confidence,
                    vendor_event_id, raw_payload, notes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(event.restaurant_id),
                    int(event.user_id),
                    event.device_id,
                    event.work_session_id,
                    event.event_type.value,
                    event.source.value,
                    event.verification_method.value,
                    event.event_time,
                    event.latitude,
                    event.longitude,
                    event.confidence,
                    event.vendor_event_id,
                    to_json(event.raw_payload),
                    event.notes,
                ),
            )
            return int(cur.lastrowid)

    def attach_session(self, *, event_id: int, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_events SET work_session_id=%s WHERE event_id=%s",
                (int(session_id), int(event_id)),
            )
            return cur.rowcount > 0

    def get(self, restaurant_id: int, event_id: int) -> Optional[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_EVENT_COLUMNS} FROM attendance_events WHERE event_id=%s AND restaurant_id=%s",
                (int(event_id), int(restaurant_id)),
            )
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def list_for_restaurant(
        self,
        restaurant_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        user_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AttendanceEvent]:
        clauses = ["restaurant_id=%s"]
        params: list[object] = [int(restaurant_id)]
        if start is not None:
            clauses.append("event_time >= %s")
            params.append(start)
        if end is not None:
            clauses.append("event_time < %s")
            params.append(end)
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        params.append(int(limit))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM attendance_events
                WHERE {where}
                ORDER BY event_time DESC, event_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def delete(self, restaurant_id: int, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_events WHERE event_id=%s AND restaurant_id=%s",
                (int(event_id), int(restaurant_id)),
            )
            return cur.rowcount > 0


class MySQLWorkSessionRepository(WorkSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, restaurant_id: int, session_id: int) -> Optional[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM work_sessions WHERE session_id=%s AND restaurant_id=%s",
                (int(session_id), int(restaurant_id)),
            )
            r = fetchone(cur)
            return _row_to_session(r) if r else None

    def find_active_auto(self, restaurant_id: int, user_id: int) -> Optional[WorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM work_sessions
                WHERE restaurant_id=%s AND user_id=%s AND status=%s AND is_manual=0
                ORDER BY clock_in DESC
                LIMIT 1
                """,
                (int(restaurant_id), int(user_id), SessionStatus.ACTIVE.value),
            )
            r = fetchone(cur)
            return _row_to_session(r) if r else None

    def list_active(self, restaurant_id: int, user_id: Optional[int] = None) -> Sequence[WorkSession]:
        clauses = ["restaurant_id=%s", "status=%s"]
        params: list[object] = [int(restaurant_id), SessionStatus.ACTIVE.value]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM work_sessions WHERE {where} ORDER BY clock_in", tuple(params))
            return [_row_to_session(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_sessions(
                    restaurant_id, user_id, clock_in, clock_out, status, hours_worked,
                    break_minutes, is_manual, notes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(restaurant_id),
                    int(user_id),
                    clock_in,
                    clock_out,
                    status.value,
                    hours_worked,
                    int(break_minutes or 0),
                    1 if is_manual else 0,
                    notes,
                ),
            )
            return int(cur.lastrowid)

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
        sql = """
            UPDATE work_sessions
            SET clock_in=%s, clock_out=%s, status=%s, hours_worked=%s, break_minutes=%s,
                is_manual=%s, correction_reason=%s, notes=%s
            WHERE session_id=%s
        """
        params: list[object] = [
            clock_in,
            clock_out,
            status.value,
            hours_worked,
            int(break_minutes or 0),
            1 if is_manual else 0,
            correction_reason,
            notes,
            int(session_id),
        ]
        if expected_status is not None:
            sql += " AND status=%s"
            params.append(expected_status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def list_stale_active(
        self, restaurant_id: int, *, started_before: datetime, user_id: Optional[int] = None
    ) -> Sequence[WorkSession]:
        clauses = ["restaurant_id=%s", "status=%s", "clock_in < %s"]
        params: list[object] = [int(restaurant_id), SessionStatus.ACTIVE.value, started_before]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM work_sessions WHERE {where} ORDER BY clock_in", tuple(params))
            return [_row_to_session(r) for r in fetchall(cur)]

    def list_for_period(
        self, restaurant_id: int, *, start: datetime, end: datetime, user_id: Optional[int] = None
    ) -> Sequence[WorkSession]:
        clauses = ["restaurant_id=%s", "clock_in >= %s", "clock_in < %s"]
        params: list[object] = [int(restaurant_id), start, end]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM work_sessions WHERE {where} ORDER BY clock_in, session_id",
                tuple(params),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def delete(self, restaurant_id: int, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM work_sessions WHERE session_id=%s AND restaurant_id=%s",
                (int(session_id), int(restaurant_id)),
            )
            return cur.rowcount > 0
