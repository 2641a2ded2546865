from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from ..common.validators import optional_text
from ..core.constants import DEFAULT_EVENTS_LIMIT, MAX_EVENTS_LIMIT
from ..core.enums import EventSource, EventType, VerificationMethod
from ..core.exceptions import NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import AttendanceEvent, NewAttendanceEvent
from .repository import AttendanceEventRepository

logger = logging.getLogger(__name__)


class AttendanceEventService:
    """Back-office view of the event log.

    Device events are evidence and cannot be removed; only manual entries can.
    """

    def __init__(self, events: AttendanceEventRepository, users: UserRepository):
        self._events = events
        self._users = users

    def list_events(
        self,
        restaurant_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        user_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceEvent]:
        limit = DEFAULT_EVENTS_LIMIT if limit is None else max(1, min(int(limit), MAX_EVENTS_LIMIT))
        return self._events.list_for_restaurant(
            restaurant_id,
            start=datetime.combine(start, time.min) if start else None,
            end=datetime.combine(end + timedelta(days=1), time.min) if end else None,
            user_id=user_id,
            limit=limit,
        )

    def create_manual_event(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        event_type: str | EventType,
        event_time: datetime,
        notes: Optional[str] = None,
    ) -> AttendanceEvent:
        try:
            event_type = EventType(event_type)
        except ValueError:
            raise ValidationError("invalid_event_type", f"Unknown event type: {event_type}")

        if not self._users.get_for_restaurant(restaurant_id, user_id):
            raise NotFoundError("user_not_found", "User not found")

        event_id = self._events.create(
            NewAttendanceEvent(
                restaurant_id=int(restaurant_id),
                user_id=int(user_id),
                event_type=event_type,
                source=EventSource.MANUAL,
                verification_method=VerificationMethod.MANUAL,
                event_time=event_time,
                notes=optional_text(notes),
            )
        )
        logger.info("manual event created", extra={"restaurant_id": restaurant_id, "event_id": event_id})
        return self._events.get(restaurant_id, event_id)

    def delete_event(self, *, restaurant_id: int, event_id: int) -> None:
        event = self._events.get(restaurant_id, event_id)
        if not event:
            raise NotFoundError("not_found", "Event not found")
        if event.source != EventSource.MANUAL:
            raise ValidationError("cannot_delete_device_event", "Only manual events can be deleted")
        self._events.delete(restaurant_id, event_id)
        logger.info("manual event deleted", extra={"restaurant_id": restaurant_id, "event_id": event_id})
