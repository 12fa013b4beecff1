"""
base.py — Common machinery for protocol adapters.

A channel turns ``(rest, title, body)`` into one outbound HTTP request and
normalises whatever happens next into a DispatchOutcome:

    rest does not fit the scheme     → ValidationError  (before any I/O)
    transport error / timeout        → NetworkError
    non-2xx response                 → DeliveryError
    2xx response                     → delivered

Subclasses implement ``build_request`` and, where the backend returns a
structured error body, override ``failure_reason``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from backend.app.notifications.errors import (
    DeliveryError,
    NetworkError,
    NotificationError,
    ValidationError,
)
from backend.app.notifications.models import DispatchOutcome


class NotificationChannel(ABC):
    """
    One protocol adapter.

    Attributes
    ----------
    scheme : str
        Lower-cased descriptor scheme this instance is registered under.
    service_name : str
        Prefix for failure reasons ("ntfy", "Telegram", ...).
    usage : str
        Expected descriptor pattern, quoted in validation errors.
    """

    service_name: str = ""
    usage: str = ""

    def __init__(self, scheme: str):
        self.scheme = scheme

    def __repr__(self) -> str:
        return f"{type(self).__name__}(scheme={self.scheme!r})"

    @abstractmethod
    def build_request(
        self,
        client: httpx.AsyncClient,
        rest: str,
        title: str,
        body: str,
    ) -> httpx.Request:
        """Sub-parse ``rest`` and build the backend request. Raises ValidationError."""

    def failure_reason(self, response: httpx.Response) -> str:
        """Reason string for a non-success response."""
        return f"{self.service_name} error: {response.status_code} {response.text}"

    def invalid(self) -> ValidationError:
        return ValidationError(
            f"Invalid {self.service_name} URL format. Use: {self.usage}"
        )

    def post(self, client: httpx.AsyncClient, url: str, **kwargs: Any) -> httpx.Request:
        """Build a POST, reporting unusable URLs as validation failures."""
        try:
            return client.build_request("POST", url, **kwargs)
        except httpx.InvalidURL as exc:
            raise ValidationError(f"Invalid {self.service_name} URL: {exc}") from exc

    async def attempt_deliver(
        self,
        rest: str,
        title: str,
        body: str,
        *,
        client: httpx.AsyncClient,
    ) -> DispatchOutcome:
        """Deliver one message. Never raises for descriptor or delivery problems."""
        try:
            request = self.build_request(client, rest, title, body)
            response = await self._send(client, request)
            if not response.is_success:
                raise DeliveryError(
                    self.failure_reason(response),
                    http_status=response.status_code,
                )
        except NotificationError as exc:
            return DispatchOutcome.from_error(exc)
        return DispatchOutcome.delivered()

    async def _send(self, client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
        try:
            return await client.send(request)
        except httpx.TimeoutException as exc:
            raise NetworkError("timeout") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc) or type(exc).__name__) from exc
