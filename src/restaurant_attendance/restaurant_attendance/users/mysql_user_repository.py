from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository


def _row_to_user(r: dict) -> User:
    return User(
        user_id=int(r["user_id"]),
        restaurant_id=int(r["restaurant_id"]),
        name=r["name"],
        role=Role(r["role"]),
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_restaurant(self, restaurant_id: int, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, restaurant_id, name, role, is_active
                FROM users
                WHERE user_id=%s AND restaurant_id=%s
                """,
                (int(user_id), int(restaurant_id)),
            )
            r = fetchone(cur)
            return _row_to_user(r) if r else None

    def list_active_for_restaurant(self, restaurant_id: int) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, restaurant_id, name, role, is_active
                FROM users
                WHERE restaurant_id=%s AND is_active=1
                ORDER BY name
                """,
                (int(restaurant_id),),
            )
            return [_row_to_user(r) for r in fetchall(cur)]
