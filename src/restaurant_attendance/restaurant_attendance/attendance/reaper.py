from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..common.datetime_utils import now_local
from ..core.constants import MAX_SESSION_HOURS
from ..core.enums import SessionStatus
from ..core.exceptions import NotFoundError
from ..restaurants.repository import RestaurantRepository
from .locks import UserLockProvider
from .model import append_note
from .repository import WorkSessionRepository

logger = logging.getLogger(__name__)


class StaleSessionReaper:
    """Closes sessions left open longer than any plausible shift.

    Closed sessions get ``auto_closed``, clock_out = now and zero hours.
    Running it again changes nothing.
    """

    def __init__(
        self,
        sessions: WorkSessionRepository,
        restaurants: RestaurantRepository,
        locks: UserLockProvider,
        *,
        max_session_hours: int = MAX_SESSION_HOURS,
    ):
        self._sessions = sessions
        self._restaurants = restaurants
        self._locks = locks
        self._max_hours = int(max_session_hours)

    @property
    def note(self) -> str:
        return f"Auto-closed after {self._max_hours}h without clock-out"

    def _now(self, restaurant_id: int) -> datetime:
        restaurant = self._restaurants.get_by_id(restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")
        return now_local(restaurant.tz)

    def reap(self, restaurant_id: int, *, now: datetime | None = None) -> int:
        now = now or self._now(restaurant_id)
        threshold = now - timedelta(hours=self._max_hours)
        closed = 0
        for stale in self._sessions.list_stale_active(restaurant_id, started_before=threshold):
            with self._locks.hold(restaurant_id, stale.user_id):
                closed += self._close_if_stale(restaurant_id, stale.session_id, threshold, now)
        if closed:
            logger.info("stale sessions auto-closed", extra={"restaurant_id": restaurant_id, "count": closed})
        return closed

    def reap_user(self, restaurant_id: int, user_id: int, *, now: datetime) -> int:
        """Same as :meth:`reap` for one user. The caller must hold that user's lock."""
        threshold = now - timedelta(hours=self._max_hours)
        closed = 0
        for stale in self._sessions.list_stale_active(restaurant_id, started_before=threshold, user_id=user_id):
            closed += self._close_if_stale(restaurant_id, stale.session_id, threshold, now)
        return closed

    def _close_if_stale(self, restaurant_id: int, session_id: int, threshold: datetime, now: datetime) -> int:
        # Re-read: the state machine may have closed it since the scan.
        current = self._sessions.get(restaurant_id, session_id)
        if not current or not current.is_active or current.clock_in >= threshold:
            return 0

        updated = self._sessions.update(
            session_id=current.session_id,
            clock_in=current.clock_in,
            clock_out=now,
            status=SessionStatus.AUTO_CLOSED,
            hours_worked=0.0,
            break_minutes=current.break_minutes,
            is_manual=current.is_manual,
            correction_reason=current.correction_reason,
            notes=append_note(current.notes, self.note),
            expected_status=SessionStatus.ACTIVE,
        )
        if updated:
            logger.warning(
                "session auto-closed",
                extra={"session_id": current.session_id, "user_id": current.user_id, "clock_in": current.clock_in.isoformat()},
            )
        return 1 if updated else 0
