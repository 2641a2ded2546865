from __future__ import annotations

import pytest

from src.restaurant_attendance.restaurant_attendance.core.enums import AttendanceMode
from src.restaurant_attendance.restaurant_attendance.core.exceptions import NotFoundError, ValidationError


def test_defaults(world):
    restaurant = world.container.settings_service.get(1)

    assert restaurant.attendance_mode == AttendanceMode.DISABLED
    assert restaurant.attendance_early_minutes == 30
    assert restaurant.attendance_late_minutes == 120


def test_update_all_fields(world):
    updated = world.container.settings_service.update(
        1, attendance_mode="device_only", early_minutes=15, late_minutes=60
    )

    assert updated.attendance_mode == AttendanceMode.DEVICE_ONLY
    assert (updated.attendance_early_minutes, updated.attendance_late_minutes) == (15, 60)
    assert world.restaurants.restaurants[1].attendance_mode == AttendanceMode.DEVICE_ONLY
    assert world.restaurants.restaurants[2].attendance_mode == AttendanceMode.DISABLED


def test_partial_update_keeps_other_fields(world):
    world.set_mode(1, AttendanceMode.DEVICE_OR_QR, early=45, late=200)

    updated = world.container.settings_service.update(1, late_minutes=90)

    assert updated.attendance_mode == AttendanceMode.DEVICE_OR_QR
    assert updated.attendance_early_minutes == 45
    assert updated.attendance_late_minutes == 90


@pytest.mark.parametrize("early, late", [(0, 0), (120, 480)])
def test_range_limits_are_inclusive(world, early, late):
    updated = world.container.settings_service.update(1, early_minutes=early, late_minutes=late)
    assert (updated.attendance_early_minutes, updated.attendance_late_minutes) == (early, late)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"early_minutes": -1},
        {"early_minutes": 121},
        {"late_minutes": -5},
        {"late_minutes": 481},
    ],
)
def test_out_of_range_minutes(world, kwargs):
    with pytest.raises(ValidationError) as exc:
        world.container.settings_service.update(1, **kwargs)
    assert exc.value.code == "validation_error"
    assert world.restaurants.restaurants[1].attendance_early_minutes == 30


@pytest.mark.parametrize("mode", ["manual", "DEVICE_ONLY", 3, ["device_only"]])
def test_unknown_mode(world, mode):
    with pytest.raises(ValidationError) as exc:
        world.container.settings_service.update(1, attendance_mode=mode)
    assert exc.value.code == "invalid_attendance_mode"


def test_settings_of_unknown_restaurant(world):
    with pytest.raises(NotFoundError) as exc:
        world.container.settings_service.update(99, attendance_mode="device_only")
    assert exc.value.code == "restaurant_not_found"
