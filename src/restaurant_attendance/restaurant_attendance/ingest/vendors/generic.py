from __future__ import annotations

from typing import Any

from ...core.enums import EventHint, VendorType, VerificationMethod
from .base import VendorPayload, as_text, text_method

_HINTS = {
    "in": EventHint.CLOCK_IN,
    "clock_in": EventHint.CLOCK_IN,
    "checkin": EventHint.CLOCK_IN,
    "0": EventHint.CLOCK_IN,
    "out": EventHint.CLOCK_OUT,
    "clock_out": EventHint.CLOCK_OUT,
    "checkout": EventHint.CLOCK_OUT,
}


class GenericPayload(VendorPayload):
    """Flat JSON shape for integrators without a dedicated adapter."""

    vendor = VendorType.GENERIC
    serial_fields = ("serial_number", "sn", "device_id")
    user_fields = ("user_id", "employee_id")
    hint_fields = ("event_type", "type")
    time_fields = ("event_time", "timestamp")
    verify_fields = ("method", "verification_method")
    event_id_fields = ("event_id",)
    confidence_fields = ("confidence",)
    supports_enrollment = True

    def parse_hint(self, value: Any) -> EventHint:
        return _HINTS.get(as_text(value), EventHint.UNKNOWN)

    def parse_verification(self, value: Any) -> VerificationMethod:
        return text_method(value)
