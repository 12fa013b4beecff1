"""
pushover.py — Push-gateway (Pushover) channel.

Descriptor: ``pushover://<user_key>@<api_token>``

Both keys travel as JSON fields to the fixed message endpoint. On
rejection Pushover answers ``{"status": 0, "errors": [...]}``; the errors
are joined into the failure reason.
"""

from __future__ import annotations

import httpx

from backend.app.notifications.channels.base import NotificationChannel

PUSHOVER_MESSAGES_URL = "https://api.pushover.net/1/messages.json"


class PushoverChannel(NotificationChannel):
    service_name = "Pushover"
    usage = "pushover://user_key@api_token"

    def build_request(self, client, rest, title, body) -> httpx.Request:
        parts = rest.split("@")
        user_key = parts[0]
        api_token = parts[1] if len(parts) > 1 else ""
        if not user_key or not api_token:
            raise self.invalid()

        return self.post(
            client,
            PUSHOVER_MESSAGES_URL,
            json={
                "token": api_token,
                "user": user_key,
                "title": title,
                "message": body,
            },
        )

    def failure_reason(self, response: httpx.Response) -> str:
        try:
            errors = response.json().get("errors")
        except (ValueError, AttributeError):
            errors = None
        if isinstance(errors, list) and errors:
            return f"Pushover error: {', '.join(str(e) for e in errors)}"
        return f"Pushover error: {response.status_code}"
