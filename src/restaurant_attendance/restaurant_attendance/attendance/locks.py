from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Protocol

from ..core.constants import SESSION_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import ConcurrencyConflict
from ..database.connection import DatabaseConnection

logger = logging.getLogger(__name__)


class UserLockProvider(Protocol):
    """Serializes session mutations for one (restaurant, user) pair.

    Different users never contend.
    """

    def hold(self, restaurant_id: int, user_id: int) -> ContextManager[None]:
        raise NotImplementedError


class InProcessUserLocks(UserLockProvider):
    """Keyed locks for a single worker process."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[int, int], threading.RLock] = {}

    def _lock_for(self, key: tuple[int, int]):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, restaurant_id: int, user_id: int) -> Iterator[None]:
        lock = self._lock_for((int(restaurant_id), int(user_id)))
        with lock:
            yield


class MySQLUserLocks(UserLockProvider):
    """Named locks (``GET_LOCK``) shared by every process using the same database.

    A named lock belongs to the connection that took it, so the connection is
    kept open for the whole critical section.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, timeout_seconds: int = SESSION_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._timeout = int(timeout_seconds)

    @staticmethod
    def lock_name(restaurant_id: int, user_id: int) -> str:
        return f"work_session:{int(restaurant_id)}:{int(user_id)}"

    @contextmanager
    def hold(self, restaurant_id: int, user_id: int) -> Iterator[None]:
        name = self.lock_name(restaurant_id, user_id)
        conn = self._conn_factory.connect()
        try:
            cur = conn.cursor()
            try:
                cur.execute("SELECT GET_LOCK(%s, %s)", (name, self._timeout))
                row = cur.fetchone()
                if not row or row[0] != 1:
                    logger.warning("session lock timeout", extra={"lock": name})
                    raise ConcurrencyConflict("lock_timeout", f"Could not acquire {name}")
                try:
                    yield
                finally:
                    cur.execute("SELECT RELEASE_LOCK(%s)", (name,))
                    cur.fetchone()
            finally:
                cur.close()
        finally:
            conn.close()
