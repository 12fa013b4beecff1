"""
webhook.py — Generic JSON webhook channel (``http://`` / ``https://``).

The descriptor is the target URL itself. The payload is always::

    {"title": ..., "body": ..., "type": "info"}
"""

from __future__ import annotations

import httpx

from backend.app.notifications.channels.base import NotificationChannel


class WebhookChannel(NotificationChannel):
    service_name = "HTTP"
    usage = "https://host/path"

    def build_request(self, client, rest, title, body) -> httpx.Request:
        return self.post(
            client,
            f"{self.scheme}://{rest}",
            json={"title": title, "body": body, "type": "info"},
        )

    def failure_reason(self, response: httpx.Response) -> str:
        return f"HTTP error: {response.status_code}"
