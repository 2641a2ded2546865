from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.restaurant_attendance.restaurant_attendance.attendance.state_machine import MANUAL_CLOSE_NOTE
from src.restaurant_attendance.restaurant_attendance.core.enums import EventType, SessionStatus
from src.restaurant_attendance.restaurant_attendance.core.exceptions import (
    ConcurrencyConflict,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def test_device_signal_opens_then_closes(world):
    machine = world.container.state_machine

    opened = machine.apply_device_signal(restaurant_id=1, user_id=10, event_time=datetime(2025, 3, 10, 10, 0))
    closed = machine.apply_device_signal(restaurant_id=1, user_id=10, event_time=datetime(2025, 3, 10, 18, 30))

    assert opened.event_type == EventType.CLOCK_IN
    assert opened.session.is_active
    assert closed.event_type == EventType.CLOCK_OUT
    assert closed.session.session_id == opened.session.session_id
    assert closed.session.status == SessionStatus.COMPLETED
    assert closed.session.hours_worked == 8.5


def test_device_signal_rejects_stale_inference(world):
    machine = world.container.state_machine
    machine.apply_device_signal(restaurant_id=1, user_id=10, event_time=datetime(2025, 3, 10, 10, 0))

    with pytest.raises(ConcurrencyConflict):
        machine.apply_device_signal(
            restaurant_id=1,
            user_id=10,
            event_time=datetime(2025, 3, 10, 11, 0),
            expected_type=EventType.CLOCK_IN,
        )


def test_device_departure_before_arrival_is_rejected(world):
    machine = world.container.state_machine
    opened = machine.apply_device_signal(restaurant_id=1, user_id=10, event_time=datetime(2025, 3, 10, 10, 0))

    with pytest.raises(ValidationError) as exc:
        machine.apply_device_signal(restaurant_id=1, user_id=10, event_time=datetime(2025, 3, 10, 9, 59))

    assert exc.value.code == "clock_out_before_clock_in"
    session = world.sessions.sessions[opened.session.session_id]
    assert session.is_active
    assert session.clock_out is None


def test_open_manual_refuses_second_open_session(world):
    world.add_session(10, datetime(2025, 3, 10, 9, 0))

    with pytest.raises(ConflictError) as exc:
        world.container.state_machine.open_manual(restaurant_id=1, user_id=10, clock_in=datetime(2025, 3, 10, 9, 30))
    assert exc.value.code == "already_active"
    assert exc.value.status_code == 409


def test_close_manual_marks_session_corrected_and_manual(world):
    session = world.add_session(10, datetime(2025, 3, 10, 9, 30))

    closed = world.container.state_machine.close_manual(restaurant_id=1, session_id=session.session_id, clock_out=time(18, 0))

    assert closed.status == SessionStatus.CORRECTED
    assert closed.clock_out == datetime(2025, 3, 10, 18, 0)
    assert closed.hours_worked == 8.5
    assert closed.is_manual
    assert closed.notes == MANUAL_CLOSE_NOTE


def test_close_manual_overnight_rolls_to_next_day(world):
    opened = world.container.state_machine.open_manual(
        restaurant_id=1, user_id=11, clock_in=datetime(2025, 3, 10, 22, 0)
    )

    closed = world.container.state_machine.close_manual(restaurant_id=1, session_id=opened.session_id, clock_out=time(6, 0))

    assert closed.status == SessionStatus.CORRECTED
    assert closed.clock_out == datetime(2025, 3, 11, 6, 0)
    assert closed.hours_worked == 8.0
    assert closed.is_overnight


def test_close_manual_twice_is_a_conflict(world):
    session = world.add_session(10, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 17, 0), hours=8)

    with pytest.raises(ConflictError) as exc:
        world.container.state_machine.close_manual(restaurant_id=1, session_id=session.session_id, clock_out=time(18, 0))
    assert exc.value.code == "already_closed"


def test_correction_requires_reason(world):
    session = world.add_session(10, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 17, 0), hours=8)

    with pytest.raises(ValidationError) as exc:
        world.container.state_machine.correct(
            restaurant_id=1, session_id=session.session_id, clock_in=time(9, 0), clock_out=time(18, 0), reason="  "
        )
    assert exc.value.code == "reason_required"


def test_correction_rolls_clock_out_past_midnight(world):
    session = world.add_session(10, datetime(2025, 3, 10, 22, 0))

    corrected = world.container.state_machine.correct(
        restaurant_id=1,
        session_id=session.session_id,
        clock_in=time(21, 0),
        clock_out=time(5, 30),
        reason="Forgot to badge out",
        break_minutes=30,
    )

    assert corrected.clock_in == datetime(2025, 3, 10, 21, 0)
    assert corrected.clock_out == datetime(2025, 3, 11, 5, 30)
    assert corrected.is_overnight
    assert corrected.hours_worked == 8.0
    assert corrected.status == SessionStatus.CORRECTED
    assert corrected.correction_reason == "Forgot to badge out"
    assert corrected.is_manual


def test_correction_can_move_session_to_another_date(world):
    session = world.add_session(10, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 17, 0), hours=8)

    corrected = world.container.state_machine.correct(
        restaurant_id=1,
        session_id=session.session_id,
        clock_in=time(10, 0),
        clock_out=time(16, 0),
        reason="Wrong day",
        work_date=date(2025, 3, 9),
    )

    assert corrected.clock_in == datetime(2025, 3, 9, 10, 0)
    assert corrected.hours_worked == 6.0


def test_manual_range_over_midnight(world):
    session = world.container.state_machine.create_manual_range(
        restaurant_id=1,
        user_id=11,
        clock_in=datetime(2025, 3, 10, 22, 0),
        clock_out=time(6, 0),
        notes=" night inventory ",
    )

    assert session.status == SessionStatus.COMPLETED
    assert session.clock_out == datetime(2025, 3, 11, 6, 0)
    assert session.hours_worked == 8.0
    assert session.is_manual
    assert session.notes == "night inventory"


def test_manual_range_without_clock_out_opens_session(world):
    session = world.container.state_machine.create_manual_range(
        restaurant_id=1, user_id=11, clock_in=datetime(2025, 3, 10, 9, 0)
    )
    assert session.is_active
    assert session.is_manual


def test_negative_break_is_rejected(world):
    with pytest.raises(ValidationError) as exc:
        world.container.state_machine.create_manual_range(
            restaurant_id=1,
            user_id=11,
            clock_in=datetime(2025, 3, 10, 9, 0),
            clock_out=time(17, 0),
            break_minutes=-5,
        )
    assert exc.value.code == "invalid_break"


def test_manual_session_for_user_of_another_restaurant(world):
    with pytest.raises(NotFoundError) as exc:
        world.container.state_machine.open_manual(restaurant_id=1, user_id=20, clock_in=datetime(2025, 3, 10, 9, 0))
    assert exc.value.code == "user_not_found"


def test_delete_session(world):
    session = world.add_session(10, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 17, 0), hours=8)

    world.container.state_machine.delete(restaurant_id=1, session_id=session.session_id)

    assert session.session_id not in world.sessions.sessions
    with pytest.raises(NotFoundError) as exc:
        world.container.state_machine.delete(restaurant_id=1, session_id=session.session_id)
    assert exc.value.code == "session_not_found"


def test_sessions_are_scoped_to_restaurant(world):
    session = world.add_session(20, datetime(2025, 3, 10, 9, 0), restaurant_id=2)

    with pytest.raises(NotFoundError):
        world.container.state_machine.close_manual(restaurant_id=1, session_id=session.session_id)


def test_list_sessions_reaps_first(world):
    stale = world.add_session(10, datetime(2025, 3, 1, 9, 0))
    world.add_session(11, datetime(2025, 3, 2, 9, 0), datetime(2025, 3, 2, 17, 0), hours=8)

    sessions = world.container.state_machine.list_sessions(
        1, start=date(2025, 3, 1), end=date(2025, 3, 31), now=datetime(2025, 3, 5, 12, 0)
    )

    assert [s.session_id for s in sessions][0] == stale.session_id
    assert sessions[0].status == SessionStatus.AUTO_CLOSED
    assert len(sessions) == 2


def test_list_sessions_filters_by_user_and_period(world):
    world.add_session(10, datetime(2025, 3, 1, 9, 0), datetime(2025, 3, 1, 17, 0), hours=8)
    world.add_session(10, datetime(2025, 4, 1, 9, 0), datetime(2025, 4, 1, 17, 0), hours=8)
    world.add_session(11, datetime(2025, 3, 2, 9, 0), datetime(2025, 3, 2, 17, 0), hours=8)

    sessions = world.container.state_machine.list_sessions(
        1, start=date(2025, 3, 1), end=date(2025, 3, 31), user_id=10, now=datetime(2025, 4, 2, 12, 0)
    )

    assert [(s.user_id, s.clock_in.month) for s in sessions] == [(10, 3)]
