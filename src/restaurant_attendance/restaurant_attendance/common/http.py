from __future__ import annotations

import math
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import BACKOFFICE_ROLES
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError
from ..restaurants.repository import RestaurantRepository
from .datetime_utils import now_local, parse_hhmm, parse_iso_date


def request_payload() -> dict:
    """Request body as a dict; invalid or non-object JSON falls back to form/query fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    merged = request.args.to_dict()
    merged.update(request.form.to_dict())
    return merged


def error_response(error: DomainError):
    return jsonify(error.to_dict()), error.status_code


def ok(status: int = 200, **payload: Any):
    return jsonify({"success": True, **payload}), status


def backoffice_required(view):
    """Allow only signed-in owner/admin/manager users bound to a restaurant."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "restaurant_id" not in session:
            return jsonify({"success": False, "error": "unauthenticated", "message": "Sign in first"}), 401
        if session.get("role") not in {r.value for r in BACKOFFICE_ROLES}:
            return error_response(AuthorizationError("forbidden", "Back-office access required"))
        return view(*args, **kwargs)

    return wrapper


def current_restaurant_id() -> int:
    return int(session["restaurant_id"])


def current_user_id() -> Optional[int]:
    value = session.get("user_id")
    return int(value) if value is not None else None


def local_today(restaurants: RestaurantRepository, restaurant_id: int) -> date:
    restaurant = restaurants.get_by_id(restaurant_id)
    if not restaurant:
        raise NotFoundError("restaurant_not_found", "Restaurant not found")
    return now_local(restaurant.tz).date()


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("validation_error", f"{field_name} must be an integer")


def optional_date(value: Any) -> Optional[date]:
    return parse_iso_date(str(value)) if value not in (None, "") else None


def optional_time(value: Any, field_name: str):
    return parse_hhmm(str(value), field_name) if value not in (None, "") else None


def optional_float(value: Any, field_name: str) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("validation_error", f"{field_name} must be a number")
    if not math.isfinite(number):
        raise ValidationError("validation_error", f"{field_name} must be a number")
    return number
