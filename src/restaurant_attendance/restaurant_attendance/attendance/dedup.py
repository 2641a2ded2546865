from __future__ import annotations

from typing import Optional

from .model import AttendanceEvent
from .repository import AttendanceEventRepository


class EventDeduplicator:
    """Recognises redelivered vendor events by (device, user, vendor_event_id).

    Must be called inside the user's session lock so the check and the insert
    that follows form one unit.
    """

    def __init__(self, events: AttendanceEventRepository):
        self._events = events

    def find_original(
        self, device_id: Optional[int], user_id: int, vendor_event_id: Optional[str]
    ) -> Optional[AttendanceEvent]:
        if not vendor_event_id or device_id is None:
            return None
        return self._events.find_by_vendor_event_id(int(device_id), int(user_id), str(vendor_event_id))

    def is_duplicate(self, device_id: Optional[int], user_id: int, vendor_event_id: Optional[str]) -> bool:
        return self.find_original(device_id, user_id, vendor_event_id) is not None
