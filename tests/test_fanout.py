"""
test_fanout.py — Tests for event fan-out to device and global endpoints.

Covers:
    • Event message wording (scan / message left / test)
    • Target collection order
    • Per-target failure isolation
    • No-op when nothing is configured

Run with:
    pytest tests/test_fanout.py -v
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from unittest.mock import patch

import httpx

from backend.app.devices import store
from backend.app.notifications.fanout import (
    collect_targets,
    device_viewed_notice,
    diagnostic_notice,
    message_left_notice,
    notify_device_event,
    notify_targets,
)
from backend.app.notifications.models import FanoutTarget, FailureKind


def _fail_on_host(host: str, status: int = 500):
    def responder(request: httpx.Request) -> httpx.Response:
        if request.url.host == host:
            return httpx.Response(status, text="down")
        return httpx.Response(200, text="ok")
    return responder


class TestEventMessages:

    def test_device_viewed(self):
        assert device_viewed_notice("Blue backpack") == (
            "Lost & Found Alert",
            "Someone scanned the QR code for: Blue backpack",
        )

    def test_message_left(self):
        assert message_left_notice("Keys", "Sam", "Found them at the cafe") == (
            "New Message for Keys",
            "From: Sam\n\nFound them at the cafe",
        )

    def test_diagnostic_notice_names_endpoint(self):
        sent_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        title, body = diagnostic_notice("Family ntfy", sent_at)

        assert title == "Test Notification"
        assert "Endpoint: Family ntfy" in body
        assert "2026-01-02 03:04:05" in body


class TestCollectTargets:

    def test_device_descriptor_first(self):
        device = store.create_device("Keys", notification_url="ntfy://keys")
        a = store.create_endpoint("A", "https://a.example/hook")

        targets = collect_targets(device, [a])

        assert [t.source for t in targets] == ["device", "global"]
        assert targets[0].descriptor == "ntfy://keys"
        assert targets[1].endpoint_id == a.id

    def test_device_without_descriptor(self):
        device = store.create_device("Keys")
        assert collect_targets(device, []) == []


class TestNotifyTargets:

    def test_failure_does_not_stop_remaining_targets(self, make_backend):
        backend = make_backend(_fail_on_host("broken.example"))
        targets = [
            FanoutTarget("device:Keys", "ntfy://broken.example/keys", source="device"),
            FanoutTarget("Webhook", "https://ok.example/hook"),
            FanoutTarget("Discord", "discord://1/abc"),
        ]

        report = asyncio.run(notify_targets(
            targets, "Lost & Found Alert", "Someone scanned", dispatcher=backend.dispatcher(),
        ))

        assert len(backend.requests) == 3
        assert report.attempted == 3
        assert report.delivered == 2
        assert report.failed == 1
        first = report.results[0].outcome
        assert first.kind == FailureKind.DELIVERY
        assert first.reason == "ntfy error: 500 down"
        assert report.completed_at is not None

    def test_invalid_descriptor_isolated_too(self, backend):
        targets = [
            FanoutTarget("bad", "not a descriptor"),
            FanoutTarget("slack", "slack://only/two"),
            FanoutTarget("good", "https://ok.example/hook"),
        ]

        report = asyncio.run(notify_targets(targets, "t", "b", dispatcher=backend.dispatcher()))

        assert [r.outcome.ok for r in report.results] == [False, False, True]
        assert len(backend.requests) == 1

    def test_no_targets_is_noop(self, backend):
        report = asyncio.run(notify_targets([], "t", "b", dispatcher=backend.dispatcher()))

        assert report.attempted == 0
        assert backend.requests == []


class TestNotifyDeviceEvent:

    def test_device_plus_all_global_endpoints(self, make_backend):
        backend = make_backend(_fail_on_host("broken.example"))
        device = store.create_device("Keys", notification_url="ntfy://broken.example/keys")
        store.create_endpoint("Hook", "https://ok.example/hook")
        store.create_endpoint("Pushover", "pushover://ukey@atoken")

        title, body = device_viewed_notice(device.name)
        report = asyncio.run(notify_device_event(
            device, title, body, dispatcher=backend.dispatcher(),
        ))

        assert report.attempted == 3
        assert report.delivered == 2
        assert [r.url.host for r in backend.requests] == [
            "broken.example", "ok.example", "api.pushover.net",
        ]
        assert [r.target.source for r in report.results] == ["device", "global", "global"]

    def test_nothing_configured(self, backend):
        device = store.create_device("Keys")

        report = asyncio.run(notify_device_event(
            device, "t", "b", dispatcher=backend.dispatcher(),
        ))

        assert report.attempted == 0
        assert report.to_dict()["results"] == []

    def test_endpoint_lookup_failure_still_notifies_device(self, backend):
        device = store.create_device("Keys", notification_url="ntfy://keys")

        with patch.object(store, "list_endpoints", side_effect=RuntimeError("db down")):
            report = asyncio.run(notify_device_event(
                device, "t", "b", dispatcher=backend.dispatcher(),
            ))

        assert report.attempted == 1
        assert report.delivered == 1
        assert str(backend.last.url) == "https://ntfy.sh/keys"

    def test_global_endpoints_notified_in_creation_order(self, backend):
        device = store.create_device("Keys")
        for host in ("first.example", "second.example", "third.example"):
            store.create_endpoint(host, f"https://{host}/hook")

        asyncio.run(notify_device_event(device, "t", "b", dispatcher=backend.dispatcher()))

        assert [r.url.host for r in backend.requests] == [
            "first.example", "second.example", "third.example",
        ]


class TestFanoutLogging:

    def test_each_failure_logged_once(self, caplog, make_backend):
        backend = make_backend(_fail_on_host("broken.example"))
        targets = [
            FanoutTarget("Broken", "https://broken.example/hook"),
            FanoutTarget("Webhook", "https://ok.example/hook"),
        ]

        with caplog.at_level(logging.INFO, logger="backend.app"):
            asyncio.run(notify_targets(targets, "t", "b", dispatcher=backend.dispatcher()))

        failures = [
            r for r in caplog.records
            if r.name == "backend.app.notifications.dispatcher" and r.levelno >= logging.WARNING
        ]
        assert len(failures) == 1
        summary = [r for r in caplog.records if r.name == "backend.app.notifications.fanout"]
        assert len(summary) == 1
        assert summary[0].levelno == logging.WARNING
        assert summary[0].getMessage() == "Fan-out 't': 1/2 delivered (failed: Broken)"
