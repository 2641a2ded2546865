from __future__ import annotations

import logging.config
from contextvars import ContextVar
from typing import Any, Optional

from ..core.constants import REDACTED_PAYLOAD_KEYS

# Async-safe storage for the per-request id
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(*, level: str = "INFO", json: bool = False) -> None:
    formatter = "json" if json else "plain"
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": RequestIdFilter},
            },
            "formatters": {
                "json": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
                },
                "plain": {
                    "format": "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "filters": ["request_id"],
                },
            },
            "root": {"handlers": ["console"], "level": level.upper()},
            "loggers": {
                "werkzeug": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            },
        }
    )


def redact_payload(data: Any) -> Any:
    """Drop credential-like keys (api_key, password, token) at any depth."""
    if isinstance(data, dict):
        return {
            k: redact_payload(v)
            for k, v in data.items()
            if str(k).lower() not in REDACTED_PAYLOAD_KEYS
        }
    if isinstance(data, list):
        return [redact_payload(v) for v in data]
    return data
