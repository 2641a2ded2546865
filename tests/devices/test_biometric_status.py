from __future__ import annotations

from dataclasses import replace

import pytest

from src.restaurant_attendance.restaurant_attendance.core.enums import BiometricState, DeviceStatus, EnrollmentStatus
from src.restaurant_attendance.restaurant_attendance.core.exceptions import NotFoundError


def _links_of(world, user_id):
    return [l for l in world.links.links.values() if l.user_id == user_id]


def test_linked_user_without_templates_needs_enrollment(world):
    status = world.container.link_service.biometric_status(1, 10)

    assert status.user_name == "Anna"
    assert status.overall_status == BiometricState.NEEDS_ENROLLMENT
    assert [d.device_id for d, _ in status.devices] == [1, 2, 3, 4]
    assert status.stats == {
        "total_devices": 4,
        "devices_with_access": 4,
        "devices_synced": 4,
        "devices_pending": 0,
        "devices_with_error": 0,
        "face_enrolled": 0,
        "fingerprint_enrolled": 0,
        "needs_enrollment": 4,
    }


def test_unlinked_user_has_no_status(world):
    status = world.container.link_service.biometric_status(1, 12)

    assert status.overall_status == BiometricState.NONE
    assert status.stats["total_devices"] == 4
    assert status.stats["devices_with_access"] == 0


def test_enrolled_everywhere(world):
    for link in _links_of(world, 10):
        world.links.update_enrollment(link_id=link.link_id, face_status=EnrollmentStatus.ENROLLED)

    status = world.container.link_service.biometric_status(1, 10)

    assert status.overall_status == BiometricState.ENROLLED
    assert status.stats["face_enrolled"] == 4
    assert status.stats["needs_enrollment"] == 0


def test_failed_enrollment_wins_over_everything(world):
    first, second = _links_of(world, 11)
    world.links.update_enrollment(link_id=first.link_id, is_synced=False)
    world.links.update_enrollment(link_id=second.link_id, fingerprint_status=EnrollmentStatus.FAILED)

    status = world.container.link_service.biometric_status(1, 11)

    assert status.overall_status == BiometricState.ERROR
    assert status.stats["devices_with_error"] == 1
    assert status.stats["devices_pending"] == 1


def test_unsynced_link_is_pending(world):
    first, second = _links_of(world, 11)
    world.links.update_enrollment(link_id=first.link_id, is_synced=False)
    world.links.update_enrollment(link_id=second.link_id, face_status=EnrollmentStatus.ENROLLED)

    assert world.container.link_service.biometric_status(1, 11).overall_status == BiometricState.PENDING


def test_inactive_devices_are_left_out(world):
    world.devices.devices[3] = replace(world.devices.devices[3], status=DeviceStatus.INACTIVE)

    status = world.container.link_service.biometric_status(1, 10)

    assert status.stats["total_devices"] == 3
    assert [d.device_id for d, _ in status.devices] == [1, 2, 4]


def test_biometric_status_of_foreign_user(world):
    with pytest.raises(NotFoundError) as exc:
        world.container.link_service.biometric_status(1, 20)
    assert exc.value.code == "user_not_found"
