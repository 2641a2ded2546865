from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.restaurant_attendance.restaurant_attendance.core.enums import EnrollmentKind, VendorType
from src.restaurant_attendance.restaurant_attendance.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from src.restaurant_attendance.restaurant_attendance.devices.model import Device
from src.restaurant_attendance.restaurant_attendance.devices.service import (
    extract_api_key,
    hash_api_key,
    parse_enrollment_kind,
    verify_api_key,
)

NOW = datetime(2025, 3, 10, 12, 0)


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"X-API-Key": "abc"}, "abc"),
        ({"Authorization": "Bearer abc"}, "abc"),
        ({"Authorization": "bearer  abc "}, "abc"),
        ({"Authorization": "abc"}, "abc"),
        ({"X-API-Key": "one", "Authorization": "Bearer two"}, "one"),
        ({}, None),
    ],
)
def test_extract_api_key(headers, expected):
    assert extract_api_key(headers) == expected


def test_api_keys_are_stored_hashed(world):
    device = world.devices.devices[1]
    assert device.api_key_hash != "key-ANV-001"
    assert verify_api_key(device.api_key_hash, "key-ANV-001")
    assert not verify_api_key(device.api_key_hash, "key-ZK-001")


def test_api_key_hashes_are_salted():
    assert hash_api_key("same-key") != hash_api_key("same-key")
    assert not verify_api_key("not-a-hash", "same-key")


@pytest.mark.parametrize(
    "label, kind",
    [("face", EnrollmentKind.FACE), ("FP", EnrollmentKind.FINGERPRINT), ("rfid", EnrollmentKind.CARD), ("palm", None)],
)
def test_parse_enrollment_kind(label, kind):
    assert parse_enrollment_kind(label) == kind


def test_next_device_user_id_follows_highest_numeric(world):
    device = world.devices.devices[1]
    world.link(1, 12, "A-01")
    assert world.container.link_service.next_device_user_id(device) == "9"


def test_next_device_user_id_on_empty_device(world):
    world.links.links.clear()
    assert world.container.link_service.next_device_user_id(world.devices.devices[1]) == "1"


def test_link_assigns_next_id_when_none_given(world):
    link = world.container.link_service.link(1, 2, 11, now=NOW)

    assert link.device_user_id == "8"
    assert link.user_id == 11
    assert link.synced_at == NOW


def test_link_with_explicit_id(world):
    link = world.container.link_service.link(1, 2, 11, " 42 ", now=NOW)
    assert link.device_user_id == "42"


def test_link_rejects_taken_device_user_id(world):
    with pytest.raises(ValidationError) as exc:
        world.container.link_service.link(1, 1, 12, "7", now=NOW)
    assert exc.value.code == "device_user_taken"


def test_link_rejects_already_linked_user(world):
    with pytest.raises(ValidationError) as exc:
        world.container.link_service.link(1, 1, 10, "30", now=NOW)
    assert exc.value.code == "user_already_linked"


def test_link_user_from_another_restaurant(world):
    with pytest.raises(NotFoundError) as exc:
        world.container.link_service.link(1, 1, 20, now=NOW)
    assert exc.value.code == "user_not_found"


def test_unlink(world):
    world.container.link_service.unlink(1, 1, "8")

    assert world.links.get_by_device_user_id(1, "8") is None
    with pytest.raises(NotFoundError) as exc:
        world.container.link_service.unlink(1, 1, "8")
    assert exc.value.code == "link_not_found"


def test_devices_of_other_restaurants_are_invisible(world):
    with pytest.raises(NotFoundError) as exc:
        world.container.link_service.list_links(1, 5)
    assert exc.value.code == "not_found"


def test_list_links(world):
    links = world.container.link_service.list_links(1, 1)
    assert [(l.device_user_id, l.user_id) for l in links] == [("7", 10), ("8", 11)]


def test_regenerated_key_replaces_the_old_one(world):
    registry = world.container.device_registry

    new_key = registry.regenerate_key(1, 1)
    device = world.devices.devices[1]

    assert new_key and new_key != "key-ANV-001"
    assert registry.authenticate(device, new_key) is device
    with pytest.raises(AuthenticationError) as exc:
        registry.authenticate(device, "key-ANV-001")
    assert exc.value.code == "invalid_api_key"


def test_heartbeat_returns_zone_aware_local_time(world):
    beat = world.container.device_registry.heartbeat("ANV-001", now=NOW)

    assert beat.device_id == 1
    assert beat.server_time.utcoffset() == timedelta(hours=3)
    assert beat.server_time.replace(tzinfo=None) == NOW
    assert world.devices.devices[1].last_heartbeat_at == NOW


def test_heartbeat_uses_the_device_restaurant_zone(world):
    beat = world.container.device_registry.heartbeat("GEN-R2", now=NOW)
    assert beat.server_time.utcoffset() == timedelta(hours=5)


def test_heartbeat_for_unknown_serial(world):
    with pytest.raises(NotFoundError) as exc:
        world.container.device_registry.heartbeat("NOPE")
    assert exc.value.code == "device_not_found"


def test_device_online_window():
    device = Device(
        device_id=1,
        restaurant_id=1,
        name="door",
        vendor=VendorType.ANVIZ,
        serial_number="X",
        api_key_hash="h",
        last_heartbeat_at=NOW - timedelta(minutes=4),
    )

    assert device.is_online(NOW)
    assert not device.is_online(NOW + timedelta(minutes=2))
    assert not device.is_online(NOW, window_minutes=3)
