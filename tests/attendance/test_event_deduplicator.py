from __future__ import annotations

from datetime import datetime

from src.restaurant_attendance.restaurant_attendance.attendance.dedup import EventDeduplicator
from src.restaurant_attendance.restaurant_attendance.attendance.model import NewAttendanceEvent
from src.restaurant_attendance.restaurant_attendance.core.enums import EventSource, EventType, VerificationMethod


def _store(world, *, device_id=1, user_id=10, vendor_event_id="v-1"):
    return world.events.create(
        NewAttendanceEvent(
            restaurant_id=1,
            user_id=user_id,
            device_id=device_id,
            event_type=EventType.CLOCK_IN,
            source=EventSource.DEVICE,
            verification_method=VerificationMethod.FACE,
            event_time=datetime(2025, 3, 10, 9, 0),
            vendor_event_id=vendor_event_id,
        )
    )


def test_same_device_user_and_vendor_id_is_duplicate(world):
    dedup = EventDeduplicator(world.events)
    event_id = _store(world)

    assert dedup.is_duplicate(1, 10, "v-1")
    assert dedup.find_original(1, 10, "v-1").event_id == event_id


def test_any_differing_key_part_is_not_duplicate(world):
    dedup = EventDeduplicator(world.events)
    _store(world)

    assert not dedup.is_duplicate(2, 10, "v-1")
    assert not dedup.is_duplicate(1, 11, "v-1")
    assert not dedup.is_duplicate(1, 10, "v-2")


def test_missing_vendor_id_or_device_is_never_duplicate(world):
    dedup = EventDeduplicator(world.events)
    _store(world, vendor_event_id=None)

    assert not dedup.is_duplicate(1, 10, None)
    assert not dedup.is_duplicate(1, 10, "")
    assert not dedup.is_duplicate(None, 10, "v-1")
