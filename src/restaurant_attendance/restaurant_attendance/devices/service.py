from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..core.enums import DeviceStatus, EnrollmentKind, EnrollmentStatus, VerificationMethod
from ..core.exceptions import AuthenticationError, NotFoundError, ValidationError
from ..restaurants.repository import RestaurantRepository
from ..users.model import User
from ..users.repository import UserRepository
from .model import Device, DeviceUserLink, Heartbeat, UserBiometricStatus
from .repository import DeviceRepository, DeviceUserLinkRepository

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer "


def hash_api_key(api_key: str) -> str:
    return generate_password_hash(api_key)


def verify_api_key(api_key_hash: str, api_key: str) -> bool:
    return check_password_hash(api_key_hash, api_key)


def generate_api_key() -> str:
    return secrets.token_urlsafe(32)


def extract_api_key(headers: Mapping[str, str]) -> Optional[str]:
    """Read the device credential from ``X-API-Key`` or ``Authorization``.

    ``Authorization`` may carry the raw key or ``Bearer <key>``.
    """
    value = headers.get("X-API-Key") or headers.get("Authorization")
    if not value:
        return None
    value = value.strip()
    if value.lower().startswith(_BEARER_PREFIX):
        value = value[len(_BEARER_PREFIX):].strip()
    return value or None


class DeviceRegistry:
    """Resolves terminals by serial number and guards the webhook with their key."""

    def __init__(self, devices: DeviceRepository, restaurants: RestaurantRepository):
        self._devices = devices
        self._restaurants = restaurants

    def resolve_by_serial(self, serial_number: Optional[str]) -> Device:
        if not serial_number:
            raise ValidationError("missing_serial", "Device serial number is missing")
        device = self._devices.get_by_serial(str(serial_number))
        if not device:
            raise NotFoundError("device_not_found", f"Device {serial_number} is not registered")
        return device

    def get_for_restaurant(self, restaurant_id: int, device_id: int) -> Device:
        device = self._devices.get_for_restaurant(restaurant_id, device_id)
        if not device:
            raise NotFoundError("not_found", "Device not found")
        return device

    def list_for_restaurant(self, restaurant_id: int) -> Sequence[Device]:
        return self._devices.list_for_restaurant(restaurant_id)

    def authenticate(self, device: Device, presented_key: Optional[str]) -> Device:
        if not presented_key:
            raise AuthenticationError("missing_api_key", "API key is required")
        if not verify_api_key(device.api_key_hash, presented_key):
            raise AuthenticationError("invalid_api_key", "API key is invalid")
        return device

    def zone_for(self, device: Device) -> ZoneInfo:
        restaurant = self._restaurants.get_by_id(device.restaurant_id)
        if restaurant is None:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")
        return restaurant.tz

    def local_now(self, device: Device) -> datetime:
        return now_local(self.zone_for(device))

    def mark_accepted(self, device: Device, *, now: datetime | None = None) -> None:
        """Any authenticated delivery proves the device is alive."""
        now = now or self.local_now(device)
        status = None if device.status == DeviceStatus.ACTIVE else DeviceStatus.ACTIVE
        self._devices.mark_heartbeat(device_id=device.device_id, at=now, status=status)

    def heartbeat(self, serial_number: Optional[str], *, now: datetime | None = None) -> Heartbeat:
        """Liveness ping; the reply carries zone-aware restaurant time."""
        device = self.resolve_by_serial(serial_number)
        tz = self.zone_for(device)
        now = now or now_local(tz)
        self._devices.mark_heartbeat(device_id=device.device_id, at=now)
        return Heartbeat(device_id=device.device_id, server_time=now.replace(tzinfo=tz))

    def regenerate_key(self, restaurant_id: int, device_id: int) -> str:
        device = self.get_for_restaurant(restaurant_id, device_id)
        api_key = generate_api_key()
        self._devices.set_api_key_hash(device_id=device.device_id, api_key_hash=hash_api_key(api_key))
        logger.info("device api key regenerated", extra={"device_id": device.device_id})
        return api_key


_ENROLL_KIND_ALIASES = {
    "face": EnrollmentKind.FACE,
    "facial": EnrollmentKind.FACE,
    "2": EnrollmentKind.FACE,
    "fingerprint": EnrollmentKind.FINGERPRINT,
    "finger": EnrollmentKind.FINGERPRINT,
    "fp": EnrollmentKind.FINGERPRINT,
    "1": EnrollmentKind.FINGERPRINT,
    "card": EnrollmentKind.CARD,
    "rfid": EnrollmentKind.CARD,
    "4": EnrollmentKind.CARD,
}


def parse_enrollment_kind(value: object) -> Optional[EnrollmentKind]:
    return _ENROLL_KIND_ALIASES.get(str(value if value is not None else "").strip().lower())


class DeviceUserLinkService:
    """Maps device-local user ids onto platform users and tracks biometric enrollment."""

    def __init__(self, links: DeviceUserLinkRepository, users: UserRepository, devices: DeviceRegistry):
        self._links = links
        self._users = users
        self._devices = devices

    def _find_link(self, device: Device, external_user_id: str) -> DeviceUserLink:
        link = self._links.get_by_device_user_id(device.device_id, str(external_user_id))
        if not link:
            raise ValidationError("user_not_found", f"User {external_user_id} is not linked on this device")
        return link

    def resolve(self, device: Device, external_user_id: str) -> tuple[User, DeviceUserLink]:
        link = self._find_link(device, external_user_id)
        user = self._users.get_for_restaurant(device.restaurant_id, link.user_id)
        if not user:
            raise ValidationError("user_not_found", f"User {external_user_id} is not linked on this device")
        return user, link

    def apply_enrollment(
        self,
        device: Device,
        external_user_id: str,
        kind: Optional[EnrollmentKind],
        succeeded: bool,
        *,
        template_count: Optional[int] = None,
        card_number: Optional[str] = None,
        now: datetime | None = None,
    ) -> DeviceUserLink:
        link = self._find_link(device, external_user_id)
        now = now or self._devices.local_now(device)

        fields: dict = {}
        if kind == EnrollmentKind.FACE:
            if succeeded:
                fields.update(
                    face_status=EnrollmentStatus.ENROLLED,
                    face_enrolled_at=now,
                    face_templates_count=int(template_count if template_count is not None else 1),
                )
            else:
                fields["face_status"] = EnrollmentStatus.FAILED
        elif kind == EnrollmentKind.FINGERPRINT:
            if succeeded:
                fields.update(fingerprint_status=EnrollmentStatus.ENROLLED, fingerprint_enrolled_at=now)
            else:
                fields["fingerprint_status"] = EnrollmentStatus.FAILED
        elif kind == EnrollmentKind.CARD and card_number:
            fields["card_number"] = str(card_number)

        if not fields:
            raise ValidationError("unknown_enroll_type", "Unknown enrollment type")

        self._links.update_enrollment(link_id=link.link_id, **fields)
        log = logger.info if succeeded else logger.warning
        log(
            "enrollment event applied",
            extra={"device_id": device.device_id, "user_id": link.user_id, "kind": kind.value, "succeeded": succeeded},
        )
        return link

    def mark_biometric_seen(self, link: DeviceUserLink, method: VerificationMethod, *, now: datetime) -> None:
        """A recognised face/fingerprint punch proves the template is enrolled."""
        if method == VerificationMethod.FACE and link.face_status != EnrollmentStatus.ENROLLED:
            self._links.update_enrollment(
                link_id=link.link_id, is_synced=True, face_status=EnrollmentStatus.ENROLLED, face_enrolled_at=now
            )
        elif method == VerificationMethod.FINGERPRINT and link.fingerprint_status != EnrollmentStatus.ENROLLED:
            self._links.update_enrollment(
                link_id=link.link_id,
                is_synced=True,
                fingerprint_status=EnrollmentStatus.ENROLLED,
                fingerprint_enrolled_at=now,
            )

    def next_device_user_id(self, device: Device) -> str:
        numeric = [int(link.device_user_id) for link in self._links.list_for_device(device.device_id)
                   if link.device_user_id.isdigit()]
        return str(max(numeric, default=0) + 1)

    def list_links(self, restaurant_id: int, device_id: int) -> Sequence[DeviceUserLink]:
        device = self._devices.get_for_restaurant(restaurant_id, device_id)
        return self._links.list_for_device(device.device_id)

    def link(
        self,
        restaurant_id: int,
        device_id: int,
        user_id: int,
        device_user_id: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> DeviceUserLink:
        device = self._devices.get_for_restaurant(restaurant_id, device_id)
        user = self._users.get_for_restaurant(restaurant_id, user_id)
        if not user:
            raise NotFoundError("user_not_found", "User not found")

        device_user_id = str(device_user_id).strip() if device_user_id not in (None, "") else self.next_device_user_id(device)
        if self._links.get_by_device_user_id(device.device_id, device_user_id):
            raise ValidationError("device_user_taken", f"Device user id {device_user_id} is already linked")
        if self._links.get_by_user(device.device_id, user.user_id):
            raise ValidationError("user_already_linked", "User is already linked to this device")

        self._links.create(
            device_id=device.device_id,
            user_id=user.user_id,
            device_user_id=device_user_id,
            synced_at=now or self._devices.local_now(device),
        )
        return self._links.get_by_device_user_id(device.device_id, device_user_id)

    def unlink(self, restaurant_id: int, device_id: int, device_user_id: str) -> None:
        device = self._devices.get_for_restaurant(restaurant_id, device_id)
        if not self._links.delete(device_id=device.device_id, device_user_id=str(device_user_id)):
            raise NotFoundError("link_not_found", "Device user link not found")

    def biometric_status(self, restaurant_id: int, user_id: int) -> UserBiometricStatus:
        user = self._users.get_for_restaurant(restaurant_id, user_id)
        if not user:
            raise NotFoundError("user_not_found", "User not found")

        active = {
            d.device_id: d
            for d in self._devices.list_for_restaurant(restaurant_id)
            if d.status == DeviceStatus.ACTIVE
        }
        pairs = [(active[l.device_id], l) for l in self._links.list_for_user(user.user_id) if l.device_id in active]
        return UserBiometricStatus(
            user_id=user.user_id,
            user_name=user.name,
            total_devices=len(active),
            devices=pairs,
        )
