"""
slack.py — Team-webhook (Slack incoming webhook) channel.

Descriptor: ``slack://<TokenA>/<TokenB>/<TokenC>``

Trailing slashes are stripped; exactly three non-empty tokens must remain.
"""

from __future__ import annotations

import httpx

from backend.app.notifications.channels.base import NotificationChannel

SLACK_HOOKS_URL = "https://hooks.slack.com/services"


class SlackChannel(NotificationChannel):
    service_name = "Slack"
    usage = "slack://TokenA/TokenB/TokenC"

    def build_request(self, client, rest, title, body) -> httpx.Request:
        parts = rest.rstrip("/").split("/")
        if len(parts) != 3 or not all(parts):
            raise self.invalid()
        token_a, token_b, token_c = parts

        return self.post(
            client,
            f"{SLACK_HOOKS_URL}/{token_a}/{token_b}/{token_c}",
            json={"text": f"*{title}*\n{body}"},
        )
