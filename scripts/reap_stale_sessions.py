"""Close work sessions left open past MAX_SESSION_HOURS in every restaurant.

Meant for cron, e.g. ``*/15 * * * * python scripts/reap_stale_sessions.py``.
Reads also reap lazily, so a missed run only delays the cleanup.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.restaurant_attendance.restaurant_attendance.common.logging import configure_logging
from src.restaurant_attendance.restaurant_attendance.container import build_container

logger = logging.getLogger("reap_stale_sessions")


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=str(getattr(settings, "LOG_LEVEL", "INFO")), json=bool(getattr(settings, "LOG_JSON", False)))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        lock_backend=str(getattr(settings, "SESSION_LOCK_BACKEND", "local")),
        lock_timeout=int(getattr(settings, "SESSION_LOCK_TIMEOUT", 10)),
        max_session_hours=int(getattr(settings, "MAX_SESSION_HOURS", 18)),
        default_timezone=str(getattr(settings, "DEFAULT_TIMEZONE", "Europe/Moscow")),
    )

    total = 0
    failed = 0
    for restaurant_id in container.restaurants_repo.list_ids():
        try:
            closed = container.reaper.reap(restaurant_id)
        except Exception:
            failed += 1
            logger.exception("reap failed", extra={"restaurant_id": restaurant_id})
            continue
        total += closed

    logger.info("stale sessions reaped", extra={"closed": total, "failed_restaurants": failed})
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
