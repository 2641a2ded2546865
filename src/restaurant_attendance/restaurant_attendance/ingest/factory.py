from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from ..core.enums import VendorType
from ..core.exceptions import ValidationError
from .signals import NormalizedSignal
from .vendors.anviz import AnvizPayload
from .vendors.base import VendorPayload
from .vendors.generic import GenericPayload
from .vendors.hikvision import HikvisionPayload
from .vendors.zkteco import ZKTecoPayload


def _default_adapters() -> dict[VendorType, VendorPayload]:
    return {
        VendorType.ANVIZ: AnvizPayload(),
        VendorType.ZKTECO: ZKTecoPayload(),
        VendorType.HIKVISION: HikvisionPayload(),
        VendorType.GENERIC: GenericPayload(),
    }


@dataclass
class VendorNormalizerFactory:
    """Factory Pattern: pick the payload strategy from the route's vendor tag."""

    adapters: dict[VendorType, VendorPayload] = field(default_factory=_default_adapters)

    def for_vendor(self, vendor: str | VendorType) -> VendorPayload:
        try:
            return self.adapters[VendorType(vendor)]
        except (ValueError, KeyError):
            raise ValidationError("unknown_type", f"Unknown device type: {vendor}")

    def extract_serial(self, vendor: str | VendorType, payload: Mapping[str, Any]) -> Optional[str]:
        return self.for_vendor(vendor).extract_serial(payload)

    def normalize(
        self, vendor: str | VendorType, payload: Mapping[str, Any], *, tz: ZoneInfo, now: datetime
    ) -> NormalizedSignal:
        return self.for_vendor(vendor).normalize(payload, tz=tz, now=now)
