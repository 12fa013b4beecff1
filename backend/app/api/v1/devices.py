"""
FastAPI route: Owner device management.

Provides endpoints to:
    GET    /api/v1/devices                          — list devices
    POST   /api/v1/devices                          — register a device
    GET    /api/v1/devices/{id}                     — device + messages
    PUT    /api/v1/devices/{id}                     — partial update
    DELETE /api/v1/devices/{id}                     — remove device
    POST   /api/v1/devices/{id}/regenerate-code     — issue a new QR code
    GET    /api/v1/devices/{id}/messages            — message thread
    POST   /api/v1/devices/{id}/messages            — owner reply
    DELETE /api/v1/devices/{id}/messages            — clear thread

Authentication is handled in front of this service.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter

from backend.app.api.schemas import (
    DeviceCreate,
    DeviceUpdate,
    MessageCreate,
    RegenerateCodeRequest,
)
from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.sanitize import (
    sanitize_description,
    sanitize_descriptor,
    sanitize_device_name,
    sanitize_message,
    sanitize_nickname,
)
from backend.app.devices import store
from backend.app.devices.models import Device

router = APIRouter(prefix="/api/v1/devices", tags=["devices"])


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def _require_device(device_id: str) -> Device:
    device = store.get_device(device_id)
    if device is None:
        raise NotFoundError("Device", id=device_id)
    return device


def _clean_descriptor(raw: Optional[str]) -> Optional[str]:
    """Empty → None; unsupported scheme → 400."""
    if raw is None or not raw.strip():
        return None
    cleaned = sanitize_descriptor(raw)
    if not cleaned:
        raise ValidationError(
            "Unsupported notification URL scheme", field="notification_url",
        )
    return cleaned


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", summary="List registered devices")
async def list_devices() -> List[Dict[str, Any]]:
    return [
        {**d.to_dict(), "message_count": store.message_count(d.id)}
        for d in store.list_devices()
    ]


@router.post("", summary="Register a device")
async def create_device(request: DeviceCreate) -> Dict[str, Any]:
    name = sanitize_device_name(request.name)
    if not name:
        raise ValidationError("Device name is required", field="name")

    device = store.create_device(
        name,
        description=(
            sanitize_description(request.description) if request.description else None
        ),
        notification_url=_clean_descriptor(request.notification_url),
        photo_url=request.photo_url,
        is_public_photo=request.is_public_photo,
    )
    return device.to_dict()


@router.get("/{device_id}", summary="Get a device with its messages")
async def get_device(device_id: str) -> Dict[str, Any]:
    device = _require_device(device_id)
    return device.to_dict(messages=store.list_messages(device.id))


@router.put("/{device_id}", summary="Update a device")
async def update_device(device_id: str, request: DeviceUpdate) -> Dict[str, Any]:
    _require_device(device_id)
    sent = request.model_fields_set
    changes: Dict[str, Any] = {}

    if "name" in sent and request.name:
        name = sanitize_device_name(request.name)
        if not name:
            raise ValidationError("Device name cannot be empty", field="name")
        changes["name"] = name
    if "description" in sent:
        changes["description"] = (
            sanitize_description(request.description) if request.description else None
        )
    if "notification_url" in sent:
        changes["notification_url"] = _clean_descriptor(request.notification_url)
    if "photo_url" in sent:
        changes["photo_url"] = request.photo_url
    if "is_public_photo" in sent and request.is_public_photo is not None:
        changes["is_public_photo"] = request.is_public_photo

    device = store.update_device(device_id, **changes)
    return device.to_dict()


@router.delete("/{device_id}", summary="Delete a device and its messages")
async def delete_device(device_id: str) -> Dict[str, Any]:
    if not store.delete_device(device_id):
        raise NotFoundError("Device", id=device_id)
    return {"success": True}


@router.post("/{device_id}/regenerate-code", summary="Issue a new public code")
async def regenerate_code(
    device_id: str,
    request: Optional[RegenerateCodeRequest] = None,
) -> Dict[str, Any]:
    _require_device(device_id)
    clear = bool(request and request.clear_messages)
    device = store.regenerate_code(device_id, clear_messages=clear)
    return {
        "success": True,
        "device": device.to_dict(messages=store.list_messages(device_id)),
        "message": (
            "QR code regenerated and messages cleared" if clear
            else "QR code regenerated. Previous URL is now invalid."
        ),
    }


@router.get("/{device_id}/messages", summary="List messages for a device")
async def list_messages(device_id: str) -> List[Dict[str, Any]]:
    _require_device(device_id)
    return [m.to_dict() for m in store.list_messages(device_id)]


@router.post("/{device_id}/messages", summary="Post an owner reply")
async def post_owner_reply(device_id: str, request: MessageCreate) -> Dict[str, Any]:
    nickname = sanitize_nickname(request.nickname)
    message = sanitize_message(request.message)
    if not nickname or not message:
        raise ValidationError("Nickname and message are required")

    _require_device(device_id)
    record = store.add_message(device_id, nickname, message, is_owner_reply=True)
    return record.to_dict()


@router.delete("/{device_id}/messages", summary="Clear all messages for a device")
async def clear_messages(device_id: str) -> Dict[str, Any]:
    _require_device(device_id)
    removed = store.clear_messages(device_id)
    return {"success": True, "message": "All messages cleared", "removed": removed}
