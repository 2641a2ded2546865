from __future__ import annotations

from flask import Flask

from ..common.http import backoffice_required, current_restaurant_id, ok, request_payload
from ..common.validators import require_int
from ..container import Container
from .model import Device, DeviceUserLink, UserBiometricStatus


def _iso(value):
    return value.isoformat() if value else None


def device_to_dict(device: Device, *, online: bool) -> dict:
    return {
        "id": device.device_id,
        "name": device.name,
        "vendor": device.vendor.value,
        "serial_number": device.serial_number,
        "status": device.status.value,
        "ip_address": device.ip_address,
        "port": device.port,
        "last_heartbeat_at": _iso(device.last_heartbeat_at),
        "last_sync_at": _iso(device.last_sync_at),
        "is_online": online,
    }


def link_to_dict(link: DeviceUserLink) -> dict:
    return {
        "id": link.link_id,
        "device_id": link.device_id,
        "user_id": link.user_id,
        "device_user_id": link.device_user_id,
        "is_synced": link.is_synced,
        "synced_at": _iso(link.synced_at),
        "face_status": link.face_status.value,
        "face_enrolled_at": _iso(link.face_enrolled_at),
        "face_templates_count": link.face_templates_count,
        "fingerprint_status": link.fingerprint_status.value,
        "fingerprint_enrolled_at": _iso(link.fingerprint_enrolled_at),
        "card_number": link.card_number,
    }


def biometric_status_to_dict(status: UserBiometricStatus) -> dict:
    return {
        "user": {"id": status.user_id, "name": status.user_name},
        "overall_status": status.overall_status.value,
        "stats": status.stats,
        "devices": [
            {
                "device_id": device.device_id,
                "device_name": device.name,
                "device_user_id": link.device_user_id,
                "is_synced": link.is_synced,
                "face_status": link.face_status.value,
                "face_enrolled_at": _iso(link.face_enrolled_at),
                "fingerprint_status": link.fingerprint_status.value,
            }
            for device, link in status.devices
        ],
    }


def register(app: Flask, container: Container) -> None:
    registry = container.device_registry
    links = container.link_service

    @app.route("/api/backoffice/attendance/devices", methods=["GET"], endpoint="device_index")
    @backoffice_required
    def device_index():
        devices = registry.list_for_restaurant(current_restaurant_id())
        return ok(
            data=[
                device_to_dict(d, online=d.is_online(registry.local_now(d), window_minutes=container.device_online_minutes))
                for d in devices
            ]
        )

    @app.route(
        "/api/backoffice/attendance/users/<int:user_id>/biometric-status",
        methods=["GET"],
        endpoint="user_biometric_status",
    )
    @backoffice_required
    def user_biometric_status(user_id: int):
        status = links.biometric_status(current_restaurant_id(), user_id)
        return ok(data=biometric_status_to_dict(status))

    @app.route("/api/backoffice/attendance/devices/<int:device_id>", methods=["GET"], endpoint="device_show")
    @backoffice_required
    def device_show(device_id: int):
        device = registry.get_for_restaurant(current_restaurant_id(), device_id)
        online = device.is_online(registry.local_now(device), window_minutes=container.device_online_minutes)
        return ok(data=device_to_dict(device, online=online))

    @app.route("/api/backoffice/attendance/devices/<int:device_id>/links", methods=["GET"], endpoint="device_links")
    @backoffice_required
    def device_links(device_id: int):
        rows = links.list_links(current_restaurant_id(), device_id)
        return ok(data=[link_to_dict(r) for r in rows])

    @app.route(
        "/api/backoffice/attendance/devices/<int:device_id>/link-user", methods=["POST"], endpoint="device_link_user"
    )
    @backoffice_required
    def device_link_user(device_id: int):
        body = request_payload()
        device_user_id = body.get("device_user_id")
        link = links.link(
            current_restaurant_id(),
            device_id,
            require_int(body.get("user_id"), "user_id"),
            str(device_user_id) if device_user_id not in (None, "") else None,
        )
        return ok(201, data=link_to_dict(link))

    @app.route(
        "/api/backoffice/attendance/devices/<int:device_id>/unlink-user/<device_user_id>",
        methods=["DELETE"],
        endpoint="device_unlink_user",
    )
    @backoffice_required
    def device_unlink_user(device_id: int, device_user_id: str):
        links.unlink(current_restaurant_id(), device_id, device_user_id)
        return ok()

    @app.route(
        "/api/backoffice/attendance/devices/<int:device_id>/next-user-id",
        methods=["GET"],
        endpoint="device_next_user_id",
    )
    @backoffice_required
    def device_next_user_id(device_id: int):
        device = registry.get_for_restaurant(current_restaurant_id(), device_id)
        return ok(device_user_id=links.next_device_user_id(device))

    @app.route(
        "/api/backoffice/attendance/devices/<int:device_id>/regenerate-key",
        methods=["POST"],
        endpoint="device_regenerate_key",
    )
    @backoffice_required
    def device_regenerate_key(device_id: int):
        api_key = registry.regenerate_key(current_restaurant_id(), device_id)
        return ok(api_key=api_key)
