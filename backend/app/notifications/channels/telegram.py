"""
telegram.py — Bot-chat (Telegram Bot API) channel.

Descriptor: ``tgram://<bot_token>/<chat_id>``

The bot token lives in the request path; the message is sent as one
Markdown text combining title and body.
"""

from __future__ import annotations

import httpx

from backend.app.notifications.channels.base import NotificationChannel

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramChannel(NotificationChannel):
    service_name = "Telegram"
    usage = "tgram://bottoken/ChatID"

    def build_request(self, client, rest, title, body) -> httpx.Request:
        parts = rest.split("/")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise self.invalid()
        bot_token, chat_id = parts[0], parts[1]

        return self.post(
            client,
            f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage",
            json={
                "chat_id": chat_id,
                "text": f"*{title}*\n\n{body}",
                "parse_mode": "Markdown",
            },
        )

    def failure_reason(self, response: httpx.Response) -> str:
        # Bot API errors: {"ok": false, "error_code": 400, "description": "..."}
        try:
            description = response.json().get("description")
        except (ValueError, AttributeError):
            description = None
        return f"Telegram error: {description or response.status_code}"
