from __future__ import annotations

import logging

from flask import Flask, request

from ..common.http import error_response, ok, request_payload
from ..common.logging import redact_payload
from ..container import Container
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/webhook/<vendor>", methods=["POST"], endpoint="attendance_webhook")
    def attendance_webhook(vendor: str):
        payload = request_payload()
        logger.info(
            "attendance webhook received",
            extra={"vendor": vendor, "data": redact_payload(payload), "ip": request.remote_addr},
        )
        try:
            result = container.ingestion_service.handle_webhook(vendor, payload, request.headers)
        except DomainError as e:
            logger.warning(
                "attendance webhook rejected",
                extra={"vendor": vendor, "error": e.code, "ip": request.remote_addr},
            )
            return error_response(e)
        body = result.to_dict()
        return ok(**{k: v for k, v in body.items() if k != "success"})

    @app.route("/api/attendance/heartbeat", methods=["POST"], endpoint="attendance_heartbeat")
    def attendance_heartbeat():
        payload = request_payload()
        serial = payload.get("serial_number") or payload.get("sn")
        try:
            beat = container.device_registry.heartbeat(str(serial) if serial is not None else None)
        except DomainError as e:
            logger.warning("heartbeat rejected", extra={"error": e.code, "ip": request.remote_addr})
            return error_response(e)
        return ok(device_id=beat.device_id, server_time=beat.server_time.isoformat())
