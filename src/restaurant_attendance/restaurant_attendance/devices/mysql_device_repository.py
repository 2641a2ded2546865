from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import DeviceStatus, EnrollmentStatus, VendorType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json
from .model import Device, DeviceUserLink
from .repository import DeviceRepository, DeviceUserLinkRepository

_DEVICE_COLUMNS = """
    device_id, restaurant_id, name, vendor, serial_number, api_key_hash, status,
    ip_address, port, last_heartbeat_at, last_sync_at, settings
"""

_LINK_COLUMNS = """
    link_id, device_id, user_id, device_user_id, is_synced, synced_at,
    face_status, face_enrolled_at, face_templates_count,
    fingerprint_status, fingerprint_enrolled_at, card_number
"""

_ENROLLMENT_FIELDS = frozenset(
    {
        "is_synced",
        "synced_at",
        "face_status",
        "face_enrolled_at",
        "face_templates_count",
        "fingerprint_status",
        "fingerprint_enrolled_at",
        "card_number",
    }
)


def _row_to_device(r: dict) -> Device:
    return Device(
        device_id=int(r["device_id"]),
        restaurant_id=int(r["restaurant_id"]),
        name=r["name"],
        vendor=VendorType(r["vendor"]),
        serial_number=r["serial_number"],
        api_key_hash=r["api_key_hash"],
        status=DeviceStatus(r["status"]),
        ip_address=r.get("ip_address"),
        port=int(r["port"]) if r.get("port") is not None else None,
        last_heartbeat_at=r.get("last_heartbeat_at"),
        last_sync_at=r.get("last_sync_at"),
        settings=from_json(r.get("settings")) or {},
    )


def _row_to_link(r: dict) -> DeviceUserLink:
    return DeviceUserLink(
        link_id=int(r["link_id"]),
        device_id=int(r["device_id"]),
        user_id=int(r["user_id"]),
        device_user_id=str(r["device_user_id"]),
        is_synced=bool(r.get("is_synced")),
        synced_at=r.get("synced_at"),
        face_status=EnrollmentStatus(r.get("face_status") or EnrollmentStatus.NONE.value),
        face_enrolled_at=r.get("face_enrolled_at"),
        face_templates_count=int(r.get("face_templates_count") or 0),
        fingerprint_status=EnrollmentStatus(r.get("fingerprint_status") or EnrollmentStatus.NONE.value),
        fingerprint_enrolled_at=r.get("fingerprint_enrolled_at"),
        card_number=r.get("card_number"),
    )


class MySQLDeviceRepository(DeviceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_serial(self, serial_number: str) -> Optional[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_DEVICE_COLUMNS} FROM attendance_devices WHERE serial_number=%s", (serial_number,))
            r = fetchone(cur)
            return _row_to_device(r) if r else None

    def get_for_restaurant(self, restaurant_id: int, device_id: int) -> Optional[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DEVICE_COLUMNS} FROM attendance_devices WHERE device_id=%s AND restaurant_id=%s",
                (int(device_id), int(restaurant_id)),
            )
            r = fetchone(cur)
            return _row_to_device(r) if r else None

    def list_for_restaurant(self, restaurant_id: int) -> Sequence[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DEVICE_COLUMNS} FROM attendance_devices WHERE restaurant_id=%s ORDER BY device_id",
                (int(restaurant_id),),
            )
            return [_row_to_device(r) for r in fetchall(cur)]

    def mark_heartbeat(self, *, device_id: int, at: datetime, status: Optional[DeviceStatus] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute(
                    "UPDATE attendance_devices SET last_heartbeat_at=%s WHERE device_id=%s",
                    (at, int(device_id)),
                )
            else:
                cur.execute(
                    "UPDATE attendance_devices SET last_heartbeat_at=%s, status=%s WHERE device_id=%s",
                    (at, status.value, int(device_id)),
                )
            return cur.rowcount > 0

    def set_api_key_hash(self, *, device_id: int, api_key_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_devices SET api_key_hash=%s WHERE device_id=%s",
                (api_key_hash, int(device_id)),
            )
            return cur.rowcount > 0


class MySQLDeviceUserLinkRepository(DeviceUserLinkRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_device_user_id(self, device_id: int, device_user_id: str) -> Optional[DeviceUserLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LINK_COLUMNS} FROM attendance_device_users WHERE device_id=%s AND device_user_id=%s",
                (int(device_id), str(device_user_id)),
            )
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def get_by_user(self, device_id: int, user_id: int) -> Optional[DeviceUserLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LINK_COLUMNS} FROM attendance_device_users WHERE device_id=%s AND user_id=%s",
                (int(device_id), int(user_id)),
            )
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def list_for_device(self, device_id: int) -> Sequence[DeviceUserLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LINK_COLUMNS} FROM attendance_device_users WHERE device_id=%s ORDER BY link_id",
                (int(device_id),),
            )
            return [_row_to_link(r) for r in fetchall(cur)]

    def list_for_user(self, user_id: int) -> Sequence[DeviceUserLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LINK_COLUMNS} FROM attendance_device_users WHERE user_id=%s ORDER BY device_id",
                (int(user_id),),
            )
            return [_row_to_link(r) for r in fetchall(cur)]

    def create(self, *, device_id: int, user_id: int, device_user_id: str, synced_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_device_users(device_id, user_id, device_user_id, is_synced, synced_at)
                VALUES(%s,%s,%s,1,%s)
                """,
                (int(device_id), int(user_id), str(device_user_id), synced_at),
            )
            return int(cur.lastrowid)

    def update_enrollment(self, *, link_id: int, **fields) -> bool:
        unknown = set(fields) - _ENROLLMENT_FIELDS
        if unknown:
            raise ValueError(f"Unsupported link fields: {sorted(unknown)}")
        if not fields:
            return False

        assignments = ", ".join(f"{name}=%s" for name in fields)
        params = [getattr(v, "value", v) for v in fields.values()]
        params.append(int(link_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE attendance_device_users SET {assignments} WHERE link_id=%s", tuple(params))
            return cur.rowcount > 0

    def delete(self, *, device_id: int, device_user_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_device_users WHERE device_id=%s AND device_user_id=%s",
                (int(device_id), str(device_user_id)),
            )
            return cur.rowcount > 0
