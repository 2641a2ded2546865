from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..core.constants import DEVICE_ONLINE_MINUTES
from ..core.enums import BiometricState, DeviceStatus, EnrollmentStatus, VendorType


@dataclass(frozen=True)
class Device:
    """Domain entity: one physical biometric/RFID terminal."""

    device_id: int
    restaurant_id: int
    name: str
    vendor: VendorType
    serial_number: str
    api_key_hash: str
    status: DeviceStatus = DeviceStatus.ACTIVE
    ip_address: Optional[str] = None
    port: Optional[int] = None
    last_heartbeat_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None
    settings: dict = field(default_factory=dict)

    def is_online(self, now: datetime, *, window_minutes: int = DEVICE_ONLINE_MINUTES) -> bool:
        if self.last_heartbeat_at is None:
            return False
        return now - self.last_heartbeat_at <= timedelta(minutes=window_minutes)


@dataclass(frozen=True)
class DeviceUserLink:
    """Association of a device-local user id with a platform user."""

    link_id: int
    device_id: int
    user_id: int
    device_user_id: str
    is_synced: bool = False
    synced_at: Optional[datetime] = None
    face_status: EnrollmentStatus = EnrollmentStatus.NONE
    face_enrolled_at: Optional[datetime] = None
    face_templates_count: int = 0
    fingerprint_status: EnrollmentStatus = EnrollmentStatus.NONE
    fingerprint_enrolled_at: Optional[datetime] = None
    card_number: Optional[str] = None


@dataclass(frozen=True)
class Heartbeat:
    device_id: int
    server_time: datetime


@dataclass(frozen=True)
class UserBiometricStatus:
    """Enrollment picture of one user across the restaurant's active terminals.

    ``devices`` pairs each active terminal with the user's link on it.
    A failed face or fingerprint enrollment counts as a device with error.
    """

    user_id: int
    user_name: str
    total_devices: int
    devices: Sequence[tuple[Device, DeviceUserLink]] = ()

    @property
    def stats(self) -> dict:
        links = [link for _, link in self.devices]
        return {
            "total_devices": self.total_devices,
            "devices_with_access": len(links),
            "devices_synced": sum(1 for l in links if l.is_synced),
            "devices_pending": sum(1 for l in links if not l.is_synced),
            "devices_with_error": sum(1 for l in links if _has_enrollment_error(l)),
            "face_enrolled": sum(1 for l in links if l.face_status == EnrollmentStatus.ENROLLED),
            "fingerprint_enrolled": sum(1 for l in links if l.fingerprint_status == EnrollmentStatus.ENROLLED),
            "needs_enrollment": sum(1 for l in links if l.is_synced and not _has_biometrics(l)),
        }

    @property
    def overall_status(self) -> BiometricState:
        if not self.devices:
            return BiometricState.NONE
        stats = self.stats
        if stats["devices_with_error"]:
            return BiometricState.ERROR
        if stats["devices_pending"]:
            return BiometricState.PENDING
        if stats["needs_enrollment"]:
            return BiometricState.NEEDS_ENROLLMENT
        if stats["face_enrolled"] or stats["fingerprint_enrolled"]:
            return BiometricState.ENROLLED
        return BiometricState.SYNCED


def _has_biometrics(link: DeviceUserLink) -> bool:
    return EnrollmentStatus.ENROLLED in (link.face_status, link.fingerprint_status)


def _has_enrollment_error(link: DeviceUserLink) -> bool:
    return EnrollmentStatus.FAILED in (link.face_status, link.fingerprint_status)
