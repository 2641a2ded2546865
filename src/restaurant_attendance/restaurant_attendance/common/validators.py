from __future__ import annotations

import math
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str | None, field_name: str, *, code: str = "validation_error") -> str:
    if not value or not str(value).strip():
        raise ValidationError(code, f"{field_name} is required")
    return str(value).strip()


def require_int(value: Any, field_name: str) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("validation_error", f"{field_name} must be an integer")
    if result <= 0:
        raise ValidationError("validation_error", f"{field_name} is invalid")
    return result


def optional_text(value: Any) -> Optional[str]:
    """Trimmed text of any JSON scalar; blank becomes None."""
    if value is None:
        return None
    return str(value).strip() or None


def require_range(value: float, field_name: str, low: float, high: float) -> float:
    if not math.isfinite(value) or value < low or value > high:
        raise ValidationError("validation_error", f"{field_name} must be between {low} and {high}")
    return value
