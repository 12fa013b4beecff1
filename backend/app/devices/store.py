"""
store.py — In-memory record store.

Devices, messages and global notification endpoints live in module-level
dicts for the lifetime of the process (production: PostgreSQL or similar;
the persistence engine is out of scope here). All functions are
synchronous and return the stored dataclass instances.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from backend.app.devices.codes import REGENERATED_ALPHABET, generate_code
from backend.app.devices.models import Device, Message, NotificationEndpoint

logger = logging.getLogger(__name__)

_devices: Dict[str, Device] = {}
_messages: Dict[str, List[Message]] = {}          # device_id → messages, oldest first
_endpoints: Dict[str, NotificationEndpoint] = {}

_UNSET = object()


def reset_store() -> None:
    """Drop every record (tests)."""
    _devices.clear()
    _messages.clear()
    _endpoints.clear()


# ═══════════════════════════════════════════════════════════════════════════
# Devices
# ═══════════════════════════════════════════════════════════════════════════

def _unused_code(alphabet: Optional[str] = None) -> str:
    taken = {d.unique_code for d in _devices.values()}
    while True:
        code = generate_code(alphabet) if alphabet else generate_code()
        if code not in taken:
            return code


def create_device(
    name: str,
    *,
    description: Optional[str] = None,
    notification_url: Optional[str] = None,
    photo_url: Optional[str] = None,
    is_public_photo: bool = False,
) -> Device:
    device = Device(
        name=name,
        unique_code=_unused_code(),
        description=description,
        notification_url=notification_url,
        photo_url=photo_url,
        is_public_photo=is_public_photo,
    )
    _devices[device.id] = device
    _messages[device.id] = []
    logger.info("Device %s registered (code=%s)", device.id, device.unique_code,
                extra={"device_id": device.id})
    return device


def list_devices() -> List[Device]:
    """Newest first."""
    return sorted(_devices.values(), key=lambda d: d.created_at, reverse=True)


def get_device(device_id: str) -> Optional[Device]:
    return _devices.get(device_id)


def get_device_by_code(code: str) -> Optional[Device]:
    for device in _devices.values():
        if device.unique_code == code:
            return device
    return None


def update_device(
    device_id: str,
    *,
    name=_UNSET,
    description=_UNSET,
    notification_url=_UNSET,
    photo_url=_UNSET,
    is_public_photo=_UNSET,
) -> Optional[Device]:
    """Apply only the fields that were passed. Returns None if unknown."""
    device = _devices.get(device_id)
    if device is None:
        return None

    changes = {
        "name": name,
        "description": description,
        "notification_url": notification_url,
        "photo_url": photo_url,
        "is_public_photo": is_public_photo,
    }
    for attr, value in changes.items():
        if value is not _UNSET:
            setattr(device, attr, value)
    device.updated_at = datetime.now(timezone.utc)
    return device


def delete_device(device_id: str) -> bool:
    device = _devices.pop(device_id, None)
    _messages.pop(device_id, None)
    return device is not None


def regenerate_code(device_id: str, *, clear_messages: bool = False) -> Optional[Device]:
    """Issue a new public code; the old QR link stops resolving."""
    device = _devices.get(device_id)
    if device is None:
        return None
    if clear_messages:
        _messages[device_id] = []
    device.unique_code = _unused_code(REGENERATED_ALPHABET)
    device.updated_at = datetime.now(timezone.utc)
    logger.info("Device %s code regenerated (messages cleared=%s)",
                device_id, clear_messages, extra={"device_id": device_id})
    return device


# ═══════════════════════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════════════════════

def add_message(
    device_id: str,
    nickname: str,
    message: str,
    *,
    is_owner_reply: bool = False,
) -> Message:
    record = Message(
        device_id=device_id,
        nickname=nickname,
        message=message,
        is_owner_reply=is_owner_reply,
    )
    _messages.setdefault(device_id, []).append(record)
    return record


def list_messages(device_id: str) -> List[Message]:
    """Oldest first."""
    return list(_messages.get(device_id, []))


def message_count(device_id: str) -> int:
    return len(_messages.get(device_id, []))


def clear_messages(device_id: str) -> int:
    removed = len(_messages.get(device_id, []))
    _messages[device_id] = []
    return removed


# ═══════════════════════════════════════════════════════════════════════════
# Global notification endpoints
# ═══════════════════════════════════════════════════════════════════════════

def create_endpoint(name: str, url: str) -> NotificationEndpoint:
    endpoint = NotificationEndpoint(name=name, url=url)
    _endpoints[endpoint.id] = endpoint
    return endpoint


def list_endpoints(*, newest_first: bool = True) -> List[NotificationEndpoint]:
    """Creation order, reversed by default for the owner dashboard."""
    endpoints = list(_endpoints.values())
    if newest_first:
        endpoints.reverse()
    return endpoints


def get_endpoint(endpoint_id: str) -> Optional[NotificationEndpoint]:
    return _endpoints.get(endpoint_id)


def update_endpoint(
    endpoint_id: str,
    *,
    name: Optional[str] = None,
    url: Optional[str] = None,
) -> Optional[NotificationEndpoint]:
    endpoint = _endpoints.get(endpoint_id)
    if endpoint is None:
        return None
    if name is not None:
        endpoint.name = name
    if url is not None:
        endpoint.url = url
    return endpoint


def delete_endpoint(endpoint_id: str) -> bool:
    return _endpoints.pop(endpoint_id, None) is not None
