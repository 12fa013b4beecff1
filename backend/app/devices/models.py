"""
models.py — Records owned by the lost & found application.

    • Device               — a physical item with a public QR code
    • Message              — a note left by a finder (or an owner reply)
    • NotificationEndpoint — a globally configured endpoint descriptor
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _generate_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    device_id: str
    nickname: str
    message: str
    is_owner_reply: bool = False
    id: str = field(default_factory=_generate_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "nickname": self.nickname,
            "message": self.message,
            "is_owner_reply": self.is_owner_reply,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Device:
    """
    A registered device.

    Attributes
    ----------
    unique_code : str
        Public code embedded in the QR link (``/device/<code>``).
    notification_url : str | None
        Optional device-specific endpoint descriptor, notified in addition
        to every global endpoint.
    photo_url : str | None
        Opaque storage key; file storage is handled elsewhere.
    """
    name: str
    unique_code: str
    description: Optional[str] = None
    notification_url: Optional[str] = None
    photo_url: Optional[str] = None
    is_public_photo: bool = False
    id: str = field(default_factory=_generate_id)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self, messages: Optional[List[Message]] = None) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "notification_url": self.notification_url,
            "photo_url": self.photo_url,
            "is_public_photo": self.is_public_photo,
            "unique_code": self.unique_code,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if messages is not None:
            d["messages"] = [m.to_dict() for m in messages]
        return d

    def to_public_dict(self, messages: List[Message]) -> Dict[str, Any]:
        """What a finder sees: everything except the notification descriptor."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "photo_url": self.photo_url,
            "unique_code": self.unique_code,
            "messages": [m.to_dict() for m in messages],
        }


@dataclass
class NotificationEndpoint:
    name: str
    url: str
    id: str = field(default_factory=_generate_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
        }
