from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from ..attendance.dedup import EventDeduplicator
from ..attendance.locks import UserLockProvider
from ..attendance.model import NewAttendanceEvent
from ..attendance.policy import AttendancePolicy
from ..attendance.reaper import StaleSessionReaper
from ..attendance.repository import AttendanceEventRepository
from ..attendance.state_machine import WorkSessionStateMachine
from ..common.datetime_utils import now_local
from ..common.logging import redact_payload
from ..core.constants import SESSION_MUTATION_ATTEMPTS
from ..core.enums import EventHint, EventSource, EventType
from ..core.exceptions import ConcurrencyConflict, DomainError, NotFoundError
from ..devices.model import Device
from ..devices.service import DeviceRegistry, DeviceUserLinkService, extract_api_key
from ..restaurants.model import Restaurant
from ..restaurants.repository import RestaurantRepository
from ..users.model import User
from .factory import VendorNormalizerFactory
from .signals import EnrollmentSignal, RawAttendanceSignal

logger = logging.getLogger(__name__)

ARRIVAL_MESSAGE = "Arrival recorded"
DEPARTURE_MESSAGE = "Departure recorded"
DUPLICATE_MESSAGE = "Event already processed"
ENROLLMENT_MESSAGE = "Biometric enrollment recorded"


@dataclass(frozen=True)
class IngestResult:
    message: str
    event_type: Optional[EventType] = None
    event_id: Optional[int] = None
    session_id: Optional[int] = None
    hint: Optional[EventHint] = None
    duplicate: bool = False
    enroll_type: Optional[str] = None
    user_id: Optional[int] = None
    device_user_id: Optional[str] = None

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"success": True, "message": self.message}
        if self.duplicate:
            out["duplicate"] = True
        for key in ("event_type", "event_id", "session_id", "hint", "enroll_type", "user_id", "device_user_id"):
            value = getattr(self, key)
            if value is not None:
                out[key] = getattr(value, "value", value)
        return out


class IngestionService:
    """Webhook pipeline: route, authenticate, normalize, then mutate under the user lock.

    Checks run in a fixed order so a misconfigured terminal always gets the
    same error: vendor tag, serial, device, API key.
    """

    def __init__(
        self,
        *,
        normalizers: VendorNormalizerFactory,
        registry: DeviceRegistry,
        links: DeviceUserLinkService,
        restaurants: RestaurantRepository,
        policy: AttendancePolicy,
        dedup: EventDeduplicator,
        state_machine: WorkSessionStateMachine,
        reaper: StaleSessionReaper,
        events: AttendanceEventRepository,
        locks: UserLockProvider,
        max_attempts: int = SESSION_MUTATION_ATTEMPTS,
    ):
        self._normalizers = normalizers
        self._registry = registry
        self._links = links
        self._restaurants = restaurants
        self._policy = policy
        self._dedup = dedup
        self._state_machine = state_machine
        self._reaper = reaper
        self._events = events
        self._locks = locks
        self._max_attempts = max(1, int(max_attempts))

    def handle_webhook(
        self,
        vendor: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str],
        *,
        now: datetime | None = None,
    ) -> IngestResult:
        adapter = self._normalizers.for_vendor(vendor)
        device = self._registry.resolve_by_serial(adapter.extract_serial(payload))
        self._registry.authenticate(device, extract_api_key(headers))

        restaurant = self._restaurant_for(device)
        now = now or now_local(restaurant.tz)
        self._registry.mark_accepted(device, now=now)

        signal = adapter.normalize(payload, tz=restaurant.tz, now=now)
        if isinstance(signal, EnrollmentSignal):
            return self._enroll(device, signal, now)
        return self._record(device, restaurant, signal, now)

    def _restaurant_for(self, device: Device) -> Restaurant:
        restaurant = self._restaurants.get_by_id(device.restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant_not_found", "Restaurant not found")
        return restaurant

    def _enroll(self, device: Device, signal: EnrollmentSignal, now: datetime) -> IngestResult:
        link = self._links.apply_enrollment(
            device,
            signal.external_user_id,
            signal.kind,
            signal.succeeded,
            template_count=signal.template_count,
            card_number=signal.card_number,
            now=now,
        )
        return IngestResult(
            message=ENROLLMENT_MESSAGE,
            enroll_type=signal.kind.value if signal.kind else signal.kind_label,
            user_id=link.user_id,
            device_user_id=link.device_user_id,
        )

    def _record(self, device: Device, restaurant: Restaurant, signal: RawAttendanceSignal, now: datetime) -> IngestResult:
        user, link = self._links.resolve(device, signal.external_user_id)

        for attempt in range(1, self._max_attempts + 1):
            try:
                result = self._record_once(device, restaurant, user, signal, now)
                break
            except ConcurrencyConflict:
                if attempt == self._max_attempts:
                    logger.error(
                        "session mutation kept conflicting",
                        extra={"device_id": device.device_id, "user_id": user.user_id, "attempts": attempt},
                    )
                    raise
                logger.warning(
                    "session mutation conflict, retrying",
                    extra={"device_id": device.device_id, "user_id": user.user_id, "attempt": attempt},
                )

        if not result.duplicate:
            self._links.mark_biometric_seen(link, signal.verification_method, now=now)
        return result

    def _record_once(
        self,
        device: Device,
        restaurant: Restaurant,
        user: User,
        signal: RawAttendanceSignal,
        now: datetime,
    ) -> IngestResult:
        restaurant_id = restaurant.restaurant_id
        with self._locks.hold(restaurant_id, user.user_id):
            self._reaper.reap_user(restaurant_id, user.user_id, now=now)

            original = self._dedup.find_original(device.device_id, user.user_id, signal.vendor_event_id)
            if original:
                logger.info(
                    "duplicate vendor event ignored",
                    extra={"device_id": device.device_id, "vendor_event_id": signal.vendor_event_id},
                )
                return IngestResult(
                    message=DUPLICATE_MESSAGE,
                    duplicate=True,
                    event_type=original.event_type,
                    event_id=original.event_id,
                    session_id=original.work_session_id,
                    hint=signal.event_hint,
                )

            event_type = self._state_machine.infer_event_type(restaurant_id, user.user_id)
            self._policy.check_allowed(
                restaurant, user.user_id, signal.timestamp, source=EventSource.DEVICE, event_type=event_type
            )

            event_id = self._events.create(
                NewAttendanceEvent(
                    restaurant_id=restaurant_id,
                    user_id=user.user_id,
                    device_id=device.device_id,
                    event_type=event_type,
                    source=EventSource.DEVICE,
                    verification_method=signal.verification_method,
                    event_time=signal.timestamp,
                    confidence=signal.confidence,
                    vendor_event_id=signal.vendor_event_id,
                    raw_payload=redact_payload(signal.raw_payload),
                )
            )
            try:
                transition = self._state_machine.apply_device_signal(
                    restaurant_id=restaurant_id,
                    user_id=user.user_id,
                    event_time=signal.timestamp,
                    expected_type=event_type,
                )
            except DomainError:
                self._events.delete(restaurant_id, event_id)
                raise
            self._events.attach_session(event_id=event_id, session_id=transition.session.session_id)

        logger.info(
            "attendance event recorded",
            extra={
                "device_id": device.device_id,
                "user_id": user.user_id,
                "event_type": event_type.value,
                "hint": signal.event_hint.value,
                "session_id": transition.session.session_id,
            },
        )
        return IngestResult(
            message=ARRIVAL_MESSAGE if event_type == EventType.CLOCK_IN else DEPARTURE_MESSAGE,
            event_type=event_type,
            event_id=event_id,
            session_id=transition.session.session_id,
            hint=signal.event_hint,
        )
