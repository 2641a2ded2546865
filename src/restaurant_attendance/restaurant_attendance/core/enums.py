from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Platform role of a restaurant user."""

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


PRIVILEGED_ROLES = frozenset({Role.OWNER})
BACKOFFICE_ROLES = frozenset({Role.OWNER, Role.ADMIN, Role.MANAGER})


class VendorType(str, Enum):
    """Terminal manufacturer, selects the webhook payload shape."""

    ANVIZ = "anviz"
    ZKTECO = "zkteco"
    HIKVISION = "hikvision"
    GENERIC = "generic"


class DeviceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OFFLINE = "offline"


class EnrollmentStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    ENROLLED = "enrolled"
    FAILED = "failed"


class BiometricState(str, Enum):
    """Summary of one user's enrollment across the restaurant's terminals."""

    NONE = "none"
    ERROR = "error"
    PENDING = "pending"
    NEEDS_ENROLLMENT = "needs_enrollment"
    ENROLLED = "enrolled"
    SYNCED = "synced"


class EnrollmentKind(str, Enum):
    FACE = "face"
    FINGERPRINT = "fingerprint"
    CARD = "card"


class EventType(str, Enum):
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"


class EventHint(str, Enum):
    """What the terminal claims the punch was. Advisory only."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    UNKNOWN = "unknown"


class EventSource(str, Enum):
    DEVICE = "device"
    QR_CODE = "qr_code"
    MANUAL = "manual"


class VerificationMethod(str, Enum):
    FACE = "face"
    FINGERPRINT = "fingerprint"
    CARD = "card"
    PIN = "pin"
    QR = "qr"
    MANUAL = "manual"
    UNKNOWN = "unknown"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CORRECTED = "corrected"
    AUTO_CLOSED = "auto_closed"


class AttendanceMode(str, Enum):
    DISABLED = "disabled"
    DEVICE_ONLY = "device_only"
    QR_ONLY = "qr_only"
    DEVICE_OR_QR = "device_or_qr"


class ScheduleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class DayOverrideType(str, Enum):
    SHIFT = "shift"
    DAY_OFF = "day_off"
    VACATION = "vacation"
    SICK_LEAVE = "sick_leave"
    ABSENCE = "absence"


DAY_TYPES_WITH_HOURS = frozenset({DayOverrideType.SHIFT, DayOverrideType.VACATION, DayOverrideType.SICK_LEAVE})
