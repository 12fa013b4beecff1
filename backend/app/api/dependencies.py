"""
Shared FastAPI dependencies.

Tests override ``get_notification_dispatcher`` through
``app.dependency_overrides`` to route traffic to a mock transport.
"""

from __future__ import annotations

from backend.app.notifications.dispatcher import NotificationDispatcher, get_dispatcher


def get_notification_dispatcher() -> NotificationDispatcher:
    return get_dispatcher()
