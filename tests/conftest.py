"""Shared fixtures: clean record store and a recording mock HTTP backend."""

from __future__ import annotations

import json
from typing import Callable, List, Optional

import httpx
import pytest

from backend.app.devices import store
from backend.app.notifications.dispatcher import NotificationDispatcher


class RecordingBackend:
    """
    Mock transport that records every outbound request.

    ``responder`` maps a request to a response; the default answers 200.
    """

    def __init__(self, responder: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.requests: List[httpx.Request] = []
        self._responder = responder or (lambda request: httpx.Response(200, text="ok"))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def dispatcher(self, **kwargs) -> NotificationDispatcher:
        return NotificationDispatcher(transport=self.transport, **kwargs)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture(autouse=True)
def _clear_store():
    """Clean in-memory records before and after each test."""
    store.reset_store()
    yield
    store.reset_store()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def make_backend() -> Callable[..., RecordingBackend]:
    """Factory for backends with a custom responder."""
    return RecordingBackend
