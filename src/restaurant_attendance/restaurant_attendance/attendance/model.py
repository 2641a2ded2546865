from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import is_overnight
from ..core.enums import EventSource, EventType, SessionStatus, VerificationMethod


@dataclass(frozen=True)
class AttendanceEvent:
    """Domain entity: one accepted clock signal. Immutable once written."""

    event_id: int
    restaurant_id: int
    user_id: int
    event_type: EventType
    source: EventSource
    verification_method: VerificationMethod
    event_time: datetime
    device_id: Optional[int] = None
    work_session_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    confidence: Optional[float] = None
    vendor_event_id: Optional[str] = None
    raw_payload: Optional[dict] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewAttendanceEvent:
    restaurant_id: int
    user_id: int
    event_type: EventType
    source: EventSource
    verification_method: VerificationMethod
    event_time: datetime
    device_id: Optional[int] = None
    work_session_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    confidence: Optional[float] = None
    vendor_event_id: Optional[str] = None
    raw_payload: Optional[dict] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class WorkSession:
    """Domain entity: a clock-in/clock-out interval.

    ``status == ACTIVE`` exactly when ``clock_out`` is None.
    """

    session_id: int
    restaurant_id: int
    user_id: int
    clock_in: datetime
    clock_out: Optional[datetime]
    status: SessionStatus
    hours_worked: float = 0.0
    break_minutes: int = 0
    is_manual: bool = False
    correction_reason: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_overnight(self) -> bool:
        return is_overnight(self.clock_in, self.clock_out)


def append_note(notes: Optional[str], note: str) -> str:
    return f"{notes}; {note}" if notes else note
