from __future__ import annotations

import importlib
import logging
import uuid
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.http import error_response
from .common.logging import configure_logging, get_request_id, set_request_id
from .container import Container, build_container
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig
from .devices.controller import register as register_devices
from .ingest.controller import register as register_ingest
from .overrides.controller import register as register_overrides
from .restaurants.controller import register as register_settings
from .timesheet.controller import register as register_timesheet

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")),
        json=bool(getattr(settings, "LOG_JSON", False)),
    )
    logger.info(
        "starting restaurant attendance",
        extra={
            "settings": settings_module,
            "db": DBConfig.from_dict(db_config).describe(),
        },
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("schema ready", extra={"tables": len(list_tables(db_config))})
        container = build_container(
            db_config=db_config,
            lock_backend=str(getattr(settings, "SESSION_LOCK_BACKEND", "local")),
            lock_timeout=int(getattr(settings, "SESSION_LOCK_TIMEOUT", 10)),
            max_session_hours=int(getattr(settings, "MAX_SESSION_HOURS", 18)),
            device_online_minutes=int(getattr(settings, "DEVICE_ONLINE_MINUTES", 5)),
            default_timezone=str(getattr(settings, "DEFAULT_TIMEZONE", "Europe/Moscow")),
            default_early_minutes=int(getattr(settings, "DEFAULT_EARLY_MINUTES", 30)),
            default_late_minutes=int(getattr(settings, "DEFAULT_LATE_MINUTES", 120)),
        )
    app.extensions["container"] = container

    @app.before_request
    def _assign_request_id():
        set_request_id(request.headers.get("X-Request-ID") or uuid.uuid4().hex)

    @app.after_request
    def _echo_request_id(response):
        response.headers["X-Request-ID"] = get_request_id() or ""
        return response

    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return error_response(e)

    @app.errorhandler(404)
    def _not_found(_e):
        return jsonify({"success": False, "error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_e):
        return jsonify({"success": False, "error": "method_not_allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        code = getattr(e, "code", None)
        if isinstance(code, int) and 400 <= code < 500:
            return jsonify({"success": False, "error": "bad_request", "message": str(e)}), code
        logger.exception("unhandled error", extra={"path": request.path})
        return jsonify({"success": False, "error": "server_error", "message": "Internal server error"}), 500

    register_ingest(app, container)
    register_devices(app, container)
    register_attendance(app, container)
    register_overrides(app, container)
    register_settings(app, container)
    register_timesheet(app, container)

    return app
