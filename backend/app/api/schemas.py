"""
Pydantic request schemas for the lost & found API.

Separated from the route handlers so they are reusable across the
codebase (route modules, tests). Free-text fields are sanitised in the
route handlers, not here: schema validation only checks types/lengths,
while emptiness is judged after sanitisation.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------

class DeviceCreate(BaseModel):
    name: str = Field("", examples=["Blue backpack"])
    description: Optional[str] = Field(None, examples=["Osprey 22L, keychain on zip"])
    notification_url: Optional[str] = Field(
        None,
        description="Device-specific endpoint descriptor",
        examples=["ntfy://my-backpack-alerts"],
    )
    photo_url: Optional[str] = Field(None, description="Storage key of an uploaded photo")
    is_public_photo: bool = Field(False)


class DeviceUpdate(BaseModel):
    """
    Partial update. Omitted fields are left unchanged; an explicit ``null``
    clears description / notification_url / photo_url.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    notification_url: Optional[str] = None
    photo_url: Optional[str] = None
    is_public_photo: Optional[bool] = None


class RegenerateCodeRequest(BaseModel):
    clear_messages: bool = Field(
        False, description="Also delete every message left for the device",
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class MessageCreate(BaseModel):
    nickname: str = Field("", examples=["Sam"])
    message: str = Field("", examples=["Found this at the bus stop on 5th."])


class PublicMessageCreate(MessageCreate):
    turnstile_token: Optional[str] = Field(
        None, description="Cloudflare Turnstile response token",
    )


# ---------------------------------------------------------------------------
# Global notification endpoints
# ---------------------------------------------------------------------------

class EndpointCreate(BaseModel):
    name: str = Field("", examples=["Family ntfy"])
    url: str = Field("", examples=["ntfys://ntfy.example.org/lost-and-found"])


class EndpointUpdate(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
