"""
channels — Per-scheme protocol adapters.

Each channel exposes:
    attempt_deliver(rest, title, body, *, client) → DispatchOutcome

Channels hold no per-call state. The registry below is the single place
a new backend is added: one more ``scheme → channel`` entry.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from backend.app.notifications.channels.base import NotificationChannel
from backend.app.notifications.channels.discord import DiscordChannel
from backend.app.notifications.channels.ntfy import NtfyChannel
from backend.app.notifications.channels.pushover import PushoverChannel
from backend.app.notifications.channels.slack import SlackChannel
from backend.app.notifications.channels.telegram import TelegramChannel
from backend.app.notifications.channels.webhook import WebhookChannel


def build_registry() -> Dict[str, NotificationChannel]:
    """Fresh scheme → channel mapping (insertion order is the advertised order)."""
    return {
        "ntfy":     NtfyChannel("ntfy"),
        "ntfys":    NtfyChannel("ntfys", secure=True),
        "tgram":    TelegramChannel("tgram"),
        "discord":  DiscordChannel("discord"),
        "slack":    SlackChannel("slack"),
        "pushover": PushoverChannel("pushover"),
        "http":     WebhookChannel("http"),
        "https":    WebhookChannel("https"),
    }


CHANNEL_REGISTRY: Dict[str, NotificationChannel] = build_registry()

SUPPORTED_SCHEMES: Tuple[str, ...] = tuple(CHANNEL_REGISTRY)


def get_channel(scheme: str) -> Optional[NotificationChannel]:
    return CHANNEL_REGISTRY.get(scheme.lower())


__all__ = [
    "CHANNEL_REGISTRY",
    "SUPPORTED_SCHEMES",
    "NotificationChannel",
    "build_registry",
    "get_channel",
]
