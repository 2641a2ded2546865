from __future__ import annotations

from typing import Any

from ...core.enums import EventHint, VendorType, VerificationMethod
from .base import VendorPayload, is_number, text_method

_VERIFY_CODES = {
    0: VerificationMethod.PIN,
    1: VerificationMethod.FINGERPRINT,
    2: VerificationMethod.CARD,
    15: VerificationMethod.FACE,
}


class ZKTecoPayload(VendorPayload):
    """ZKTeco push SDK attendance log (punch 0 = in, 1 = out)."""

    vendor = VendorType.ZKTECO
    serial_fields = ("sn", "serial_number")
    user_fields = ("user_id", "pin")
    hint_fields = ("punch", "status")
    time_fields = ("timestamp", "time")
    verify_fields = ("verify", "verify_type", "method")
    event_id_fields = ("event_id", "log_id")

    def parse_hint(self, value: Any) -> EventHint:
        if not is_number(value):
            return EventHint.UNKNOWN
        return {0: EventHint.CLOCK_IN, 1: EventHint.CLOCK_OUT}.get(int(float(value)), EventHint.UNKNOWN)

    def parse_verification(self, value: Any) -> VerificationMethod:
        if is_number(value):
            return _VERIFY_CODES.get(int(float(value)), VerificationMethod.UNKNOWN)
        return text_method(value)
