from __future__ import annotations

from flask import Flask

from ..common.http import backoffice_required, current_restaurant_id, ok, optional_int, request_payload
from ..container import Container
from .model import Restaurant
from .service import MODE_LABELS


def settings_to_dict(restaurant: Restaurant) -> dict:
    return {
        "attendance_mode": restaurant.attendance_mode.value,
        "attendance_early_minutes": restaurant.attendance_early_minutes,
        "attendance_late_minutes": restaurant.attendance_late_minutes,
        "timezone": restaurant.timezone,
        "modes": [{"value": mode.value, "label": label} for mode, label in MODE_LABELS.items()],
    }


def register(app: Flask, container: Container) -> None:
    settings = container.settings_service

    @app.route("/api/backoffice/attendance/settings", methods=["GET"], endpoint="attendance_settings_show")
    @backoffice_required
    def attendance_settings_show():
        return ok(data=settings_to_dict(settings.get(current_restaurant_id())))

    @app.route("/api/backoffice/attendance/settings", methods=["PUT"], endpoint="attendance_settings_update")
    @backoffice_required
    def attendance_settings_update():
        body = request_payload()
        restaurant = settings.update(
            current_restaurant_id(),
            attendance_mode=body.get("attendance_mode"),
            early_minutes=optional_int(body.get("attendance_early_minutes"), "attendance_early_minutes"),
            late_minutes=optional_int(body.get("attendance_late_minutes"), "attendance_late_minutes"),
        )
        return ok(data=settings_to_dict(restaurant), message="Settings saved")
