"""
dispatcher.py — Route one notification to one endpoint descriptor.

    dispatch(descriptor, title, body) → DispatchOutcome

Flow:
    1. parse ``scheme://rest``            (ParseError → failed, no I/O)
    2. look the scheme up in the registry (unknown → failed, no I/O)
    3. hand ``rest`` to the channel       (it validates, sends, normalises)
    4. bound the whole call by the dispatch timeout

Nothing raised by a channel escapes ``dispatch``. Delivery is best-effort:
a failure is reported once and never retried.

Descriptors embed credentials, so they are never logged; log lines carry
the scheme only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional

import httpx

from backend.app.core.config import settings
from backend.app.notifications.channels import CHANNEL_REGISTRY, NotificationChannel
from backend.app.notifications.descriptor import parse_descriptor
from backend.app.notifications.errors import ParseError
from backend.app.notifications.models import (
    DispatchOutcome,
    FailureKind,
    NotificationRequest,
)

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Scheme-routed notification sender.

    Parameters
    ----------
    registry : dict, optional
        Scheme → channel mapping. Defaults to the built-in registry.
    timeout_seconds : float, optional
        Upper bound for one dispatch, network included. A timeout yields a
        failed outcome with reason ``"timeout"``.
    transport : httpx.AsyncBaseTransport, optional
        Injected into the HTTP client (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        registry: Optional[Dict[str, NotificationChannel]] = None,
        *,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = registry if registry is not None else CHANNEL_REGISTRY
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.NOTIFY_TIMEOUT_SECONDS
        )
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def supported_schemes(self) -> str:
        return ", ".join(self.registry)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
                headers={"User-Agent": settings.NOTIFY_USER_AGENT},
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def dispatch(self, descriptor: str, title: str, body: str) -> DispatchOutcome:
        """Send ``(title, body)`` to the endpoint named by ``descriptor``."""
        start = time.perf_counter()
        scheme, outcome = await self._dispatch(descriptor, title, body)
        duration_ms = (time.perf_counter() - start) * 1000

        if outcome.ok:
            logger.info(
                "Notification delivered via %s (%.1fms)", scheme, duration_ms,
                extra={"scheme": scheme, "outcome": outcome.status.value,
                       "duration_ms": duration_ms},
            )
        else:
            logger.warning(
                "Notification via %s failed [%s]: %s",
                scheme or "?", outcome.kind.value if outcome.kind else "?",
                outcome.reason,
                extra={"scheme": scheme, "outcome": outcome.status.value,
                       "failure_kind": outcome.kind.value if outcome.kind else None,
                       "http_status": outcome.http_status,
                       "duration_ms": duration_ms},
            )
        return outcome

    async def send(self, request: NotificationRequest) -> DispatchOutcome:
        return await self.dispatch(request.descriptor, request.title, request.body)

    async def _dispatch(self, descriptor: str, title: str, body: str):
        try:
            scheme, rest = parse_descriptor(descriptor)
        except ParseError as exc:
            return None, DispatchOutcome.from_error(exc)

        channel = self.registry.get(scheme)
        if channel is None:
            return scheme, DispatchOutcome.failed(
                f"Unsupported notification scheme: {scheme}. "
                f"Supported: {self.supported_schemes}",
                FailureKind.PARSE,
            )

        try:
            client = await self._get_client()
            outcome = await asyncio.wait_for(
                channel.attempt_deliver(rest, title, body, client=client),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            outcome = DispatchOutcome.failed("timeout", FailureKind.NETWORK)
        except Exception as exc:
            logger.exception("Channel %r raised unexpectedly", channel)
            outcome = DispatchOutcome.failed(
                str(exc) or "Network error", FailureKind.INTERNAL,
            )
        return scheme, outcome


# ═══════════════════════════════════════════════════════════════════════════
# Process-wide default dispatcher
# ═══════════════════════════════════════════════════════════════════════════

# Created on first use, closed in the application lifespan
_default_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = NotificationDispatcher()
    return _default_dispatcher


async def close_dispatcher() -> None:
    global _default_dispatcher
    if _default_dispatcher is not None:
        await _default_dispatcher.close()
        _default_dispatcher = None


async def dispatch(descriptor: str, title: str, body: str) -> DispatchOutcome:
    """Dispatch through the default dispatcher."""
    return await get_dispatcher().dispatch(descriptor, title, body)
