from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from ...common.datetime_utils import from_epoch, to_local_naive
from ...core.enums import EnrollmentKind, EventHint, VendorType, VerificationMethod
from ...core.exceptions import ValidationError
from ...devices.service import parse_enrollment_kind
from ..signals import EnrollmentSignal, NormalizedSignal, RawAttendanceSignal

_TEXT_METHODS = {
    "face": VerificationMethod.FACE,
    "facial": VerificationMethod.FACE,
    "finger": VerificationMethod.FINGERPRINT,
    "fingerprint": VerificationMethod.FINGERPRINT,
    "fp": VerificationMethod.FINGERPRINT,
    "card": VerificationMethod.CARD,
    "rfid": VerificationMethod.CARD,
    "nfc": VerificationMethod.CARD,
    "pin": VerificationMethod.PIN,
    "password": VerificationMethod.PIN,
    "pwd": VerificationMethod.PIN,
    "qr": VerificationMethod.QR,
}

_FALSE_WORDS = frozenset({"0", "false", "no", "fail", "failed", "error"})


def lookup(payload: Mapping[str, Any], path: str) -> Any:
    """Resolve ``"A.b"`` against nested mappings; missing segments give None."""
    node: Any = payload
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


def pick(payload: Mapping[str, Any], fields: Sequence[str]) -> Any:
    """First present, non-empty value among the candidate field names."""
    for name in fields:
        value = lookup(payload, name)
        if value is None or isinstance(value, (Mapping, list)):
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def is_number(value: Any) -> bool:
    """Finite numbers and numeric strings; NaN and infinity do not count."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    try:
        return math.isfinite(float(value.strip() if isinstance(value, str) else value))
    except (ValueError, OverflowError):
        return False


def as_text(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def as_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return as_text(value) not in _FALSE_WORDS


def text_method(value: Any) -> VerificationMethod:
    return _TEXT_METHODS.get(as_text(value), VerificationMethod.UNKNOWN)


def parse_timestamp(value: Any, tz: ZoneInfo, now: datetime) -> datetime:
    """ISO strings (naive = restaurant local), epoch seconds/milliseconds, or ``now``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return now
    if is_number(value):
        try:
            return from_epoch(float(value), tz)
        except (OverflowError, OSError, ValueError):
            raise ValidationError("invalid_timestamp", f"Timestamp out of range: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_local_naive(datetime.fromisoformat(text), tz).replace(microsecond=0)
        except ValueError:
            pass
    raise ValidationError("invalid_timestamp", f"Unrecognised timestamp: {value!r}")


class VendorPayload(ABC):
    """Strategy Pattern: how one terminal family encodes a punch.

    Subclasses declare ordered candidate field names; the first non-empty one wins.
    """

    vendor: VendorType
    serial_fields: Sequence[str] = ()
    user_fields: Sequence[str] = ()
    hint_fields: Sequence[str] = ()
    time_fields: Sequence[str] = ()
    verify_fields: Sequence[str] = ()
    event_id_fields: Sequence[str] = ()
    confidence_fields: Sequence[str] = ()
    supports_enrollment = False

    def extract_serial(self, payload: Mapping[str, Any]) -> Optional[str]:
        value = pick(payload, self.serial_fields)
        return str(value).strip() if value is not None else None

    def extract_user_id(self, payload: Mapping[str, Any]) -> str:
        value = pick(payload, self.user_fields)
        if value is None:
            raise ValidationError("missing_user_id", "User id is missing")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()

    @abstractmethod
    def parse_hint(self, value: Any) -> EventHint:
        raise NotImplementedError

    @abstractmethod
    def parse_verification(self, value: Any) -> VerificationMethod:
        raise NotImplementedError

    def is_enrollment(self, payload: Mapping[str, Any]) -> bool:
        if not self.supports_enrollment:
            return False
        marker = as_text(payload.get("event") or payload.get("event_type"))
        if "enroll" in marker or "register" in marker:
            return True
        return any(payload.get(key) is not None for key in ("enroll_type", "templates_count", "face_count"))

    def normalize(self, payload: Mapping[str, Any], *, tz: ZoneInfo, now: datetime) -> NormalizedSignal:
        serial = self.extract_serial(payload)
        if not serial:
            raise ValidationError("missing_serial", "Device serial number is missing")

        if self.is_enrollment(payload):
            return self._enrollment(serial, payload)

        verify = pick(payload, self.verify_fields)
        event_id = pick(payload, self.event_id_fields)
        return RawAttendanceSignal(
            vendor=self.vendor,
            device_serial=serial,
            external_user_id=self.extract_user_id(payload),
            timestamp=parse_timestamp(pick(payload, self.time_fields), tz, now),
            event_hint=self.parse_hint(pick(payload, self.hint_fields)),
            verification_method=self.parse_verification(verify) if verify is not None else VerificationMethod.UNKNOWN,
            confidence=self._confidence(pick(payload, self.confidence_fields)),
            vendor_event_id=str(event_id).strip() if event_id is not None else None,
            raw_payload=dict(payload),
        )

    def _enrollment(self, serial: str, payload: Mapping[str, Any]) -> EnrollmentSignal:
        label = as_text(pick(payload, ("enroll_type", "type")) or EnrollmentKind.FACE.value)
        count = pick(payload, ("templates_count", "face_count"))
        card = pick(payload, ("card_number", "card_no"))
        return EnrollmentSignal(
            vendor=self.vendor,
            device_serial=serial,
            external_user_id=self.extract_user_id(payload),
            kind=parse_enrollment_kind(label),
            kind_label=label,
            succeeded=as_bool(pick(payload, ("success", "result"))),
            template_count=int(float(count)) if is_number(count) else 1,
            card_number=str(card).strip() if card is not None else None,
            raw_payload=dict(payload),
        )

    @staticmethod
    def _confidence(value: Any) -> Optional[float]:
        if not is_number(value):
            return None
        return round(min(max(float(value), 0.0), 100.0), 2)
