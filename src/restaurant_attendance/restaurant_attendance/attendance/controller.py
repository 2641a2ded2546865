from __future__ import annotations

from datetime import datetime

from flask import Flask, request

from ..common.datetime_utils import format_hours, parse_hhmm, parse_iso_date
from ..common.http import (
    backoffice_required,
    current_restaurant_id,
    local_today,
    ok,
    optional_date,
    optional_int,
    optional_time,
    request_payload,
)
from ..common.validators import require_int, require_non_empty
from ..container import Container
from ..core.exceptions import ValidationError
from .model import AttendanceEvent, WorkSession
from .status_service import UserAttendanceStatus


def session_to_dict(s: WorkSession) -> dict:
    return {
        "id": s.session_id,
        "user_id": s.user_id,
        "date": s.clock_in.date().isoformat(),
        "clock_in": s.clock_in.strftime("%H:%M"),
        "clock_out": s.clock_out.strftime("%H:%M") if s.clock_out else None,
        "clock_in_at": s.clock_in.isoformat(),
        "clock_out_at": s.clock_out.isoformat() if s.clock_out else None,
        "status": s.status.value,
        "hours_worked": round(s.hours_worked, 2),
        "hours_formatted": format_hours(s.hours_worked),
        "break_minutes": s.break_minutes,
        "is_manual": s.is_manual,
        "is_overnight": s.is_overnight,
        "correction_reason": s.correction_reason,
        "notes": s.notes,
    }


def event_to_dict(e: AttendanceEvent) -> dict:
    return {
        "id": e.event_id,
        "user_id": e.user_id,
        "device_id": e.device_id,
        "work_session_id": e.work_session_id,
        "event_type": e.event_type.value,
        "source": e.source.value,
        "verification_method": e.verification_method.value,
        "event_time": e.event_time.isoformat(),
        "confidence": e.confidence,
        "vendor_event_id": e.vendor_event_id,
        "notes": e.notes,
    }


def status_to_dict(status: UserAttendanceStatus) -> dict:
    schedule = status.today_schedule
    return {
        "date": status.today.isoformat(),
        "is_clocked_in": status.is_clocked_in,
        "active_session": session_to_dict(status.active_session) if status.active_session else None,
        "today_schedule": {
            "id": schedule.schedule_id,
            "start_time": schedule.start_time.strftime("%H:%M") if schedule.start_time else None,
            "end_time": schedule.end_time.strftime("%H:%M") if schedule.end_time else None,
            "break_minutes": schedule.break_minutes,
            "planned_hours": schedule.planned_hours,
        }
        if schedule
        else None,
        "today_sessions": [session_to_dict(s) for s in status.today_sessions],
        "today_events": [event_to_dict(e) for e in status.today_events],
        "can_clock_in": status.can_clock_in,
        "can_clock_out": status.can_clock_out,
    }


def _parse_event_time(value) -> datetime:
    text = require_non_empty(value, "event_time")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError("validation_error", "event_time must be an ISO date-time")
    # Stored times are restaurant-local wall clock.
    return parsed.replace(tzinfo=None)


def register(app: Flask, container: Container) -> None:
    machine = container.state_machine

    @app.route("/api/backoffice/attendance/sessions", methods=["GET"], endpoint="sessions_index")
    @backoffice_required
    def sessions_index():
        restaurant_id = current_restaurant_id()
        today = local_today(container.restaurants_repo, restaurant_id)
        start = optional_date(request.args.get("start")) or today.replace(day=1)
        end = optional_date(request.args.get("end")) or today
        if end < start:
            raise ValidationError("validation_error", "end must not be before start")
        sessions = machine.list_sessions(
            restaurant_id,
            start=start,
            end=end,
            user_id=optional_int(request.args.get("user_id"), "user_id"),
        )
        return ok(data=[session_to_dict(s) for s in sessions])

    @app.route("/api/backoffice/attendance/sessions", methods=["POST"], endpoint="sessions_create")
    @backoffice_required
    def sessions_create():
        body = request_payload()
        work_date = parse_iso_date(require_non_empty(body.get("date"), "date"))
        clock_in = datetime.combine(work_date, parse_hhmm(body.get("clock_in") or "", "clock_in"))
        session = machine.create_manual_range(
            restaurant_id=current_restaurant_id(),
            user_id=require_int(body.get("user_id"), "user_id"),
            clock_in=clock_in,
            clock_out=optional_time(body.get("clock_out"), "clock_out"),
            break_minutes=optional_int(body.get("break_minutes"), "break_minutes") or 0,
            notes=body.get("notes"),
        )
        return ok(201, data=session_to_dict(session))

    @app.route("/api/backoffice/attendance/sessions/<int:session_id>/close", methods=["PUT"], endpoint="sessions_close")
    @backoffice_required
    def sessions_close(session_id: int):
        body = request_payload()
        session = machine.close_manual(
            restaurant_id=current_restaurant_id(),
            session_id=session_id,
            clock_out=optional_time(body.get("clock_out"), "clock_out"),
        )
        return ok(data=session_to_dict(session))

    @app.route(
        "/api/backoffice/attendance/sessions/<int:session_id>/correct", methods=["PUT"], endpoint="sessions_correct"
    )
    @backoffice_required
    def sessions_correct(session_id: int):
        body = request_payload()
        session = machine.correct(
            restaurant_id=current_restaurant_id(),
            session_id=session_id,
            clock_in=parse_hhmm(body.get("clock_in") or "", "clock_in"),
            clock_out=optional_time(body.get("clock_out"), "clock_out"),
            reason=body.get("reason") or "",
            break_minutes=optional_int(body.get("break_minutes"), "break_minutes"),
            work_date=optional_date(body.get("date")),
        )
        return ok(data=session_to_dict(session))

    @app.route("/api/backoffice/attendance/sessions/<int:session_id>", methods=["DELETE"], endpoint="sessions_delete")
    @backoffice_required
    def sessions_delete(session_id: int):
        machine.delete(restaurant_id=current_restaurant_id(), session_id=session_id)
        return ok()

    @app.route("/api/backoffice/attendance/events", methods=["GET"], endpoint="events_index")
    @backoffice_required
    def events_index():
        events = container.event_service.list_events(
            current_restaurant_id(),
            start=optional_date(request.args.get("start")),
            end=optional_date(request.args.get("end")),
            user_id=optional_int(request.args.get("user_id"), "user_id"),
            limit=optional_int(request.args.get("limit"), "limit"),
        )
        return ok(data=[event_to_dict(e) for e in events])

    @app.route("/api/backoffice/attendance/events", methods=["POST"], endpoint="events_create")
    @backoffice_required
    def events_create():
        body = request_payload()
        event = container.event_service.create_manual_event(
            restaurant_id=current_restaurant_id(),
            user_id=require_int(body.get("user_id"), "user_id"),
            event_type=body.get("event_type") or "",
            event_time=_parse_event_time(body.get("event_time")),
            notes=body.get("notes"),
        )
        return ok(201, data=event_to_dict(event))

    @app.route("/api/backoffice/attendance/events/<int:event_id>", methods=["DELETE"], endpoint="events_delete")
    @backoffice_required
    def events_delete(event_id: int):
        container.event_service.delete_event(restaurant_id=current_restaurant_id(), event_id=event_id)
        return ok()

    @app.route(
        "/api/backoffice/attendance/users/<int:user_id>/status", methods=["GET"], endpoint="user_attendance_status"
    )
    @backoffice_required
    def user_attendance_status(user_id: int):
        status = container.status_service.for_user(current_restaurant_id(), user_id)
        return ok(data=status_to_dict(status))
