from __future__ import annotations

from typing import Any

from ...core.enums import EventHint, VendorType, VerificationMethod
from .base import VendorPayload, as_text, is_number, text_method


class AnvizPayload(VendorPayload):
    """Anviz cloud push. Numeric verify modes are a bitmask: 8 face, 4 card, 2 fp, 1 pin."""

    vendor = VendorType.ANVIZ
    serial_fields = ("device_sn", "sn", "serial", "serial_number")
    user_fields = ("user_id", "employee_id", "uid")
    hint_fields = ("event_type", "type", "in_out")
    time_fields = ("event_time", "time", "record_time", "timestamp")
    verify_fields = ("verify_mode", "mode", "method")
    event_id_fields = ("event_id", "record_id")
    confidence_fields = ("confidence", "score")
    supports_enrollment = True

    def parse_hint(self, value: Any) -> EventHint:
        if value is None:
            return EventHint.UNKNOWN
        if is_number(value):
            code = int(float(value))
            if code in (0, 1):
                return EventHint.CLOCK_IN
            if code == 2:
                return EventHint.CLOCK_OUT
            return EventHint.UNKNOWN
        text = as_text(value)
        if text in ("in", "clock_in"):
            return EventHint.CLOCK_IN
        if text in ("out", "clock_out"):
            return EventHint.CLOCK_OUT
        return EventHint.UNKNOWN

    def parse_verification(self, value: Any) -> VerificationMethod:
        if is_number(value):
            mode = int(float(value))
            if mode >= 8:
                return VerificationMethod.FACE
            if mode >= 4:
                return VerificationMethod.CARD
            if mode >= 2:
                return VerificationMethod.FINGERPRINT
            return VerificationMethod.PIN
        return text_method(value)
