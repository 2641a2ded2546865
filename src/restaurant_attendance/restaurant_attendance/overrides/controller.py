from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import (
    backoffice_required,
    current_restaurant_id,
    current_user_id,
    ok,
    optional_float,
    optional_time,
    request_payload,
)
from ..common.validators import require_int, require_non_empty
from ..container import Container
from ..timesheet.service import override_to_dict


def register(app: Flask, container: Container) -> None:
    @app.route("/api/backoffice/attendance/day-override", methods=["POST"], endpoint="day_override_save")
    @backoffice_required
    def day_override_save():
        body = request_payload()
        override = container.override_service.upsert(
            restaurant_id=current_restaurant_id(),
            user_id=require_int(body.get("user_id"), "user_id"),
            work_date=parse_iso_date(require_non_empty(body.get("date"), "date")),
            day_type=require_non_empty(body.get("type"), "type"),
            start_time=optional_time(body.get("start_time"), "start_time"),
            end_time=optional_time(body.get("end_time"), "end_time"),
            hours=optional_float(body.get("hours"), "hours"),
            notes=body.get("notes"),
            created_by=current_user_id(),
        )
        return ok(data=override_to_dict(override))

    @app.route(
        "/api/backoffice/attendance/day-override/<int:override_id>", methods=["DELETE"], endpoint="day_override_delete"
    )
    @backoffice_required
    def day_override_delete(override_id: int):
        container.override_service.delete(restaurant_id=current_restaurant_id(), override_id=override_id)
        return ok()
