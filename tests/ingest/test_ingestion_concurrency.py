from __future__ import annotations

import threading
from datetime import datetime

from src.restaurant_attendance.restaurant_attendance.core.enums import SessionStatus

NOW = datetime(2025, 3, 10, 12, 0)


def _fire(world, payloads):
    barrier = threading.Barrier(len(payloads))
    results, errors = [], []

    def worker(payload):
        barrier.wait()
        try:
            results.append(
                world.container.ingestion_service.handle_webhook(
                    "anviz", payload, {"X-API-Key": "key-ANV-001"}, now=NOW
                )
            )
        except Exception as e:  # collected for the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(p,)) for p in payloads]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results, errors


def test_parallel_punches_alternate_without_double_sessions(world):
    payloads = [
        {"device_sn": "ANV-001", "user_id": "7", "event_time": "2025-03-10T12:00:00", "event_id": f"p-{i}"}
        for i in range(8)
    ]

    results, errors = _fire(world, payloads)

    assert errors == []
    assert len(results) == 8
    assert len(world.events.events) == 8
    statuses = [s.status for s in world.sessions.sessions.values()]
    assert statuses.count(SessionStatus.COMPLETED) == 4
    assert statuses.count(SessionStatus.ACTIVE) == 0


def test_parallel_redeliveries_store_one_event(world):
    payload = {"device_sn": "ANV-001", "user_id": "7", "event_time": "2025-03-10T09:35:00", "event_id": "same"}

    results, errors = _fire(world, [dict(payload) for _ in range(5)])

    assert errors == []
    assert len(world.events.events) == 1
    assert sum(1 for r in results if r.duplicate) == 4
    assert len(world.sessions.sessions) == 1


def test_different_users_do_not_block_each_other(world):
    payloads = [
        {"device_sn": "ANV-001", "user_id": "7", "event_time": "2025-03-10T09:35:00"},
        {"device_sn": "ANV-001", "user_id": "8", "event_time": "2025-03-10T09:36:00"},
    ]

    results, errors = _fire(world, payloads)

    assert errors == []
    assert {r.event_type.value for r in results} == {"clock_in"}
    assert {s.user_id for s in world.sessions.list_active(1)} == {10, 11}
