"""
discord.py — Incoming-webhook chat (Discord) channel.

Descriptor: ``discord://<webhook_id>/<webhook_token>``

One trailing slash is tolerated. Only the first two path segments are
used; anything after the token is ignored.
"""

from __future__ import annotations

import httpx

from backend.app.notifications.channels.base import NotificationChannel

DISCORD_WEBHOOK_URL = "https://discord.com/api/webhooks"
EMBED_COLOR = 0x3498DB


class DiscordChannel(NotificationChannel):
    service_name = "Discord"
    usage = "discord://webhook_id/webhook_token"

    def build_request(self, client, rest, title, body) -> httpx.Request:
        if rest.endswith("/"):
            rest = rest[:-1]
        parts = rest.split("/")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise self.invalid()
        webhook_id, webhook_token = parts[0], parts[1]

        return self.post(
            client,
            f"{DISCORD_WEBHOOK_URL}/{webhook_id}/{webhook_token}",
            json={
                "embeds": [
                    {
                        "title": title,
                        "description": body,
                        "color": EMBED_COLOR,
                    }
                ],
            },
        )
