from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import DeviceStatus
from .model import Device, DeviceUserLink


class DeviceRepository(Protocol):
    def get_by_serial(self, serial_number: str) -> Optional[Device]:
        """Serial numbers are unique across the whole device table."""

        raise NotImplementedError

    def get_for_restaurant(self, restaurant_id: int, device_id: int) -> Optional[Device]:
        raise NotImplementedError

    def list_for_restaurant(self, restaurant_id: int) -> Sequence[Device]:
        raise NotImplementedError

    def mark_heartbeat(self, *, device_id: int, at: datetime, status: Optional[DeviceStatus] = None) -> bool:
        raise NotImplementedError

    def set_api_key_hash(self, *, device_id: int, api_key_hash: str) -> bool:
        raise NotImplementedError


class DeviceUserLinkRepository(Protocol):
    def get_by_device_user_id(self, device_id: int, device_user_id: str) -> Optional[DeviceUserLink]:
        raise NotImplementedError

    def get_by_user(self, device_id: int, user_id: int) -> Optional[DeviceUserLink]:
        raise NotImplementedError

    def list_for_device(self, device_id: int) -> Sequence[DeviceUserLink]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[DeviceUserLink]:
        raise NotImplementedError

    def create(self, *, device_id: int, user_id: int, device_user_id: str, synced_at: datetime) -> int:
        raise NotImplementedError

    def update_enrollment(self, *, link_id: int, **fields) -> bool:
        """Update enrollment columns (face_status, fingerprint_status, card_number, ...)."""

        raise NotImplementedError

    def delete(self, *, device_id: int, device_user_id: str) -> bool:
        raise NotImplementedError
