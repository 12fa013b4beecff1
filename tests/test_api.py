"""
test_api.py — HTTP-level tests for the lost & found API.

Covers:
    • Device CRUD, code regeneration, message threads
    • Global notification endpoint CRUD + test notification
    • Public device page and message posting, including owner fan-out
    • Rate limiting on public routes
    • Error response format

Run with:
    pytest tests/test_api.py -v
"""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.api.dependencies import get_notification_dispatcher
from backend.app.core.rate_limit import RateLimiter
from backend.app.devices.codes import REGENERATED_ALPHABET
from backend.app.main import app


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════

def _fail_on_host(host: str):
    def responder(request: httpx.Request) -> httpx.Response:
        if request.url.host == host:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, text="ok")
    return responder


@pytest.fixture
def notify_backend(make_backend):
    backend = make_backend(_fail_on_host("broken.example"))
    dispatcher = backend.dispatcher()
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    yield backend
    app.dependency_overrides.pop(get_notification_dispatcher, None)


@pytest.fixture
def client(notify_backend):
    app.state.rate_limiter = RateLimiter()
    yield TestClient(app)
    del app.state.rate_limiter


def _create_device(client, **overrides):
    payload = {"name": "Blue backpack", "description": "Osprey 22L"}
    payload.update(overrides)
    response = client.post("/api/v1/devices", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Devices
# ═══════════════════════════════════════════════════════════════════════════

class TestDevices:

    def test_create_and_get(self, client):
        device = _create_device(client, notification_url="ntfy://backpack")

        assert len(device["unique_code"]) == 8
        assert device["notification_url"] == "ntfy://backpack"

        fetched = client.get(f"/api/v1/devices/{device['id']}").json()
        assert fetched["name"] == "Blue backpack"
        assert fetched["messages"] == []

    def test_name_is_sanitised(self, client):
        device = _create_device(client, name="  <b>Keys</b>  ")
        assert device["name"] == "&lt;b&gt;Keys&lt;&#x2F;b&gt;"

    def test_name_required(self, client):
        response = client.post("/api/v1/devices", json={"name": "   "})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Device name is required"

    def test_malformed_body_uses_error_envelope(self, client):
        response = client.post("/api/v1/devices", json={"name": ["not", "a", "string"]})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["fields"] == ["name"]

    def test_unsupported_descriptor_rejected(self, client):
        response = client.post(
            "/api/v1/devices", json={"name": "Keys", "notification_url": "mailto://me"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_list_includes_message_count(self, client):
        device = _create_device(client)
        client.post(
            f"/api/v1/devices/{device['id']}/messages",
            json={"nickname": "Owner", "message": "Thanks!"},
        )

        listed = client.get("/api/v1/devices").json()
        assert listed[0]["message_count"] == 1

    def test_partial_update(self, client):
        device = _create_device(client, notification_url="ntfy://backpack")

        updated = client.put(
            f"/api/v1/devices/{device['id']}", json={"notification_url": None},
        ).json()

        assert updated["notification_url"] is None
        assert updated["name"] == "Blue backpack"
        assert updated["description"] == "Osprey 22L"

    def test_delete(self, client):
        device = _create_device(client)

        assert client.delete(f"/api/v1/devices/{device['id']}").json() == {"success": True}
        assert client.get(f"/api/v1/devices/{device['id']}").status_code == 404

    def test_missing_device_404(self, client):
        response = client.get("/api/v1/devices/does-not-exist")

        assert response.status_code == 404
        body = response.json()["error"]
        assert body["code"] == "NOT_FOUND"
        assert body["status"] == 404

    def test_regenerate_code_invalidates_old_link(self, client):
        device = _create_device(client)
        old_code = device["unique_code"]

        result = client.post(f"/api/v1/devices/{device['id']}/regenerate-code").json()

        assert result["success"] is True
        new_code = result["device"]["unique_code"]
        assert new_code != old_code
        assert set(new_code) <= set(REGENERATED_ALPHABET)
        assert client.get(f"/api/v1/public/device/{old_code}").status_code == 404
        assert client.get(f"/api/v1/public/device/{new_code}").status_code == 200

    def test_regenerate_code_can_clear_messages(self, client):
        device = _create_device(client)
        client.post(
            f"/api/v1/public/device/{device['unique_code']}/message",
            json={"nickname": "Sam", "message": "Found it"},
        )

        result = client.post(
            f"/api/v1/devices/{device['id']}/regenerate-code",
            json={"clear_messages": True},
        ).json()

        assert result["message"] == "QR code regenerated and messages cleared"
        assert result["device"]["messages"] == []

    def test_owner_reply_and_clear(self, client):
        device = _create_device(client)

        reply = client.post(
            f"/api/v1/devices/{device['id']}/messages",
            json={"nickname": "Owner", "message": "Thank you!"},
        ).json()
        assert reply["is_owner_reply"] is True

        cleared = client.delete(f"/api/v1/devices/{device['id']}/messages").json()
        assert cleared["removed"] == 1
        assert client.get(f"/api/v1/devices/{device['id']}/messages").json() == []


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Global Notification Endpoints
# ═══════════════════════════════════════════════════════════════════════════

class TestNotificationEndpoints:

    def test_crud(self, client):
        created = client.post(
            "/api/v1/notifications/endpoints",
            json={"name": "Family", "url": "ntfys://ntfy.example.org/family"},
        ).json()
        endpoint_id = created["id"]

        assert client.get("/api/v1/notifications/endpoints").json()[0]["id"] == endpoint_id

        updated = client.put(
            f"/api/v1/notifications/endpoints/{endpoint_id}", json={"name": "Household"},
        ).json()
        assert updated["name"] == "Household"
        assert updated["url"] == "ntfys://ntfy.example.org/family"

        assert client.delete(f"/api/v1/notifications/endpoints/{endpoint_id}").json() == {
            "success": True,
        }
        assert client.get(f"/api/v1/notifications/endpoints/{endpoint_id}").status_code == 404

    def test_list_is_newest_first(self, client):
        for name in ("first", "second"):
            client.post(
                "/api/v1/notifications/endpoints",
                json={"name": name, "url": f"https://{name}.example/hook"},
            )

        listed = client.get("/api/v1/notifications/endpoints").json()
        assert [e["name"] for e in listed] == ["second", "first"]

    def test_name_and_url_required(self, client):
        response = client.post("/api/v1/notifications/endpoints", json={"name": "x"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Name and URL are required"

    def test_unsupported_scheme_rejected(self, client):
        response = client.post(
            "/api/v1/notifications/endpoints", json={"name": "x", "url": "gotify://x"},
        )
        assert response.status_code == 400

    def test_schemes(self, client):
        schemes = client.get("/api/v1/notifications/schemes").json()["schemes"]
        assert "ntfy" in schemes and "pushover" in schemes

    def test_test_notification_success(self, client, notify_backend):
        endpoint = client.post(
            "/api/v1/notifications/endpoints",
            json={"name": "Hook", "url": "https://ok.example/hook"},
        ).json()

        response = client.post(f"/api/v1/notifications/endpoints/{endpoint['id']}/test")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Test notification sent!"}
        sent = json.loads(notify_backend.last.content)
        assert sent["title"] == "Test Notification"
        assert "Endpoint: Hook" in sent["body"]

    def test_test_notification_returns_reason_verbatim(self, client, notify_backend):
        endpoint = client.post(
            "/api/v1/notifications/endpoints",
            json={"name": "Bot", "url": "tgram://onlytoken"},
        ).json()

        response = client.post(f"/api/v1/notifications/endpoints/{endpoint['id']}/test")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "NOTIFICATION_TEST_FAILED"
        assert error["message"] == "Invalid Telegram URL format. Use: tgram://bottoken/ChatID"
        assert notify_backend.requests == []

    def test_test_notification_reports_backend_status(self, client):
        endpoint = client.post(
            "/api/v1/notifications/endpoints",
            json={"name": "Down", "url": "https://broken.example/hook"},
        ).json()

        response = client.post(f"/api/v1/notifications/endpoints/{endpoint['id']}/test")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "HTTP error: 500"


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Public Device Page & Fan-out
# ═══════════════════════════════════════════════════════════════════════════

class TestPublicDevicePage:

    def test_scan_notifies_device_and_global_endpoints(self, client, notify_backend):
        device = _create_device(client, notification_url="ntfy://broken.example/keys")
        client.post(
            "/api/v1/notifications/endpoints",
            json={"name": "Hook", "url": "https://ok.example/hook"},
        )
        client.post(
            "/api/v1/notifications/endpoints",
            json={"name": "Discord", "url": "discord://1/abc"},
        )

        response = client.get(f"/api/v1/public/device/{device['unique_code']}")

        # Device endpoint failed, both global endpoints succeeded; the
        # finder still gets the page.
        assert response.status_code == 200
        page = response.json()
        assert page["name"] == "Blue backpack"
        assert "notification_url" not in page
        assert len(notify_backend.requests) == 3
        assert {r.url.host for r in notify_backend.requests} == {
            "broken.example", "ok.example", "discord.com",
        }
        hook = next(r for r in notify_backend.requests if r.url.host == "ok.example")
        assert json.loads(hook.content) == {
            "title": "Lost & Found Alert",
            "body": "Someone scanned the QR code for: Blue backpack",
            "type": "info",
        }

    def test_scan_without_endpoints_sends_nothing(self, client, notify_backend):
        device = _create_device(client)

        response = client.get(f"/api/v1/public/device/{device['unique_code']}")

        assert response.status_code == 200
        assert notify_backend.requests == []

    def test_unknown_code_404(self, client, notify_backend):
        assert client.get("/api/v1/public/device/nope1234").status_code == 404
        assert notify_backend.requests == []

    def test_message_is_stored_and_notified(self, client, notify_backend):
        device = _create_device(client, notification_url="https://ok.example/hook")

        response = client.post(
            f"/api/v1/public/device/{device['unique_code']}/message",
            json={"nickname": "Sam", "message": "Found it <at> the cafe"},
        )

        assert response.status_code == 200
        record = response.json()
        assert record["message"] == "Found it &lt;at&gt; the cafe"
        assert record["is_owner_reply"] is False
        assert json.loads(notify_backend.last.content) == {
            "title": "New Message for Blue backpack",
            "body": "From: Sam\n\nFound it &lt;at&gt; the cafe",
            "type": "info",
        }

        page = client.get(f"/api/v1/public/device/{device['unique_code']}").json()
        assert [m["nickname"] for m in page["messages"]] == ["Sam"]

    def test_message_delivery_failure_hidden_from_finder(self, client, notify_backend):
        device = _create_device(client, notification_url="ntfy://broken.example/keys")

        response = client.post(
            f"/api/v1/public/device/{device['unique_code']}/message",
            json={"nickname": "Sam", "message": "Found it"},
        )

        assert response.status_code == 200
        assert "error" not in response.json()
        assert len(notify_backend.requests) == 1

    def test_message_requires_nickname_and_text(self, client, notify_backend):
        device = _create_device(client, notification_url="https://ok.example/hook")

        response = client.post(
            f"/api/v1/public/device/{device['unique_code']}/message",
            json={"nickname": "\x00\x01", "message": "hello"},
        )

        assert response.status_code == 400
        assert notify_backend.requests == []


# ═══════════════════════════════════════════════════════════════════════════
# Section 4: Rate Limiting & Misc
# ═══════════════════════════════════════════════════════════════════════════

class TestRateLimiting:

    def test_public_message_limit(self, client):
        device = _create_device(client)
        url = f"/api/v1/public/device/{device['unique_code']}/message"
        payload = {"nickname": "Sam", "message": "hi"}

        statuses = [client.post(url, json=payload).status_code for _ in range(6)]

        assert statuses == [200] * 5 + [429]
        blocked = client.post(url, json=payload)
        assert blocked.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(blocked.headers["Retry-After"]) > 0
        assert blocked.headers["X-RateLimit-Remaining"] == "0"

    def test_limits_are_per_client_ip(self, client):
        device = _create_device(client)
        url = f"/api/v1/public/device/{device['unique_code']}/message"
        payload = {"nickname": "Sam", "message": "hi"}

        for _ in range(5):
            client.post(url, json=payload, headers={"X-Forwarded-For": "203.0.113.7"})

        other = client.post(url, json=payload, headers={"X-Forwarded-For": "198.51.100.2"})
        assert other.status_code == 200


class TestMisc:

    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == "Lost & Found Tracker"
        assert "tgram" in body["notification_schemes"]

    def test_config(self, client):
        assert "public_portal_url" in client.get("/api/v1/config").json()

    def test_request_id_header(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
