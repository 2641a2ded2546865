from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..core.enums import EnrollmentKind, EventHint, VendorType, VerificationMethod


@dataclass(frozen=True)
class RawAttendanceSignal:
    """Canonical clock punch, independent of the vendor payload shape.

    ``timestamp`` is already restaurant-local wall time.
    """

    vendor: VendorType
    device_serial: str
    external_user_id: str
    timestamp: datetime
    event_hint: EventHint = EventHint.UNKNOWN
    verification_method: VerificationMethod = VerificationMethod.UNKNOWN
    confidence: Optional[float] = None
    vendor_event_id: Optional[str] = None
    raw_payload: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class EnrollmentSignal:
    """A terminal reporting that a biometric template was (or failed to be) registered."""

    vendor: VendorType
    device_serial: str
    external_user_id: str
    kind: Optional[EnrollmentKind]
    kind_label: str
    succeeded: bool = True
    template_count: int = 1
    card_number: Optional[str] = None
    raw_payload: dict = field(default_factory=dict, compare=False)


NormalizedSignal = Union[RawAttendanceSignal, EnrollmentSignal]
