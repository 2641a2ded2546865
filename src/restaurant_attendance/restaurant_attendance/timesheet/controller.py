from __future__ import annotations

from flask import Flask, request

from ..common.http import backoffice_required, current_restaurant_id, local_today, ok, optional_int
from ..common.validators import require_range
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def _period(restaurant_id: int) -> tuple[int, int]:
        today = local_today(container.restaurants_repo, restaurant_id)
        year = optional_int(request.args.get("year"), "year") or today.year
        month = optional_int(request.args.get("month"), "month") or today.month
        require_range(year, "year", 2000, 2100)
        require_range(month, "month", 1, 12)
        return year, month

    @app.route("/api/backoffice/timesheet", methods=["GET"], endpoint="timesheet_index")
    @backoffice_required
    def timesheet_index():
        restaurant_id = current_restaurant_id()
        year, month = _period(restaurant_id)
        sheet = container.timesheet_service.monthly(
            restaurant_id,
            year,
            month,
            user_id=optional_int(request.args.get("user_id"), "user_id"),
        )
        return ok(data=sheet.to_dict())

    @app.route("/api/backoffice/timesheet/<int:user_id>", methods=["GET"], endpoint="timesheet_show")
    @backoffice_required
    def timesheet_show(user_id: int):
        restaurant_id = current_restaurant_id()
        year, month = _period(restaurant_id)
        sheet = container.timesheet_service.per_user(restaurant_id, user_id, year, month)
        return ok(data=sheet.to_dict())
