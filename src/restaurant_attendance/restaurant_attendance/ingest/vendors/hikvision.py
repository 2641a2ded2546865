from __future__ import annotations

from typing import Any

from ...core.enums import EventHint, VendorType, VerificationMethod
from .base import VendorPayload, as_text

# Checked in order; ISAPI combines modes like "cardOrFace".
_MODE_MARKERS = (
    ("face", VerificationMethod.FACE),
    ("fp", VerificationMethod.FINGERPRINT),
    ("finger", VerificationMethod.FINGERPRINT),
    ("card", VerificationMethod.CARD),
    ("pw", VerificationMethod.PIN),
    ("password", VerificationMethod.PIN),
)


class HikvisionPayload(VendorPayload):
    """Hikvision ISAPI event notification with a nested ``AccessControlEvent``."""

    vendor = VendorType.HIKVISION
    serial_fields = ("deviceSerialNo", "serialNumber", "AccessControlEvent.deviceSerialNo")
    user_fields = (
        "AccessControlEvent.employeeNoString",
        "AccessControlEvent.employeeNo",
        "employeeNoString",
    )
    hint_fields = ("AccessControlEvent.attendanceStatus",)
    time_fields = ("AccessControlEvent.time", "dateTime")
    verify_fields = ("AccessControlEvent.currentVerifyMode",)
    event_id_fields = ("AccessControlEvent.serialNo", "eventId")

    def parse_hint(self, value: Any) -> EventHint:
        text = as_text(value)
        if text == "checkin":
            return EventHint.CLOCK_IN
        if text == "checkout":
            return EventHint.CLOCK_OUT
        return EventHint.UNKNOWN

    def parse_verification(self, value: Any) -> VerificationMethod:
        text = as_text(value)
        for marker, method in _MODE_MARKERS:
            if marker in text:
                return method
        return VerificationMethod.UNKNOWN
