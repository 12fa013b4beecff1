"""
fanout.py — Notify every configured endpoint about one device event.

═══════════════════════════════════════════════════════════════════════════
FAN-OUT POLICY
═══════════════════════════════════════════════════════════════════════════

    Targets    device-specific descriptor (if set), then every global
               endpoint, in that order
    Order      sequential; deliveries are independent and best-effort
    Isolation  each target is attempted regardless of earlier failures
    Failures   logged once by the dispatcher, collected in the FanoutReport,
               never raised
    Empty      no targets configured → empty report, nothing sent

The API layer runs ``notify_device_event`` as a background task, after the
finder's response has been produced, so nothing here can change what the
finder sees.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from backend.app.devices import store
from backend.app.devices.models import Device, NotificationEndpoint
from backend.app.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from backend.app.notifications.models import (
    DispatchOutcome,
    FailureKind,
    FanoutReport,
    FanoutTarget,
    TargetResult,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Event Messages
# ═══════════════════════════════════════════════════════════════════════════

def device_viewed_notice(device_name: str) -> Tuple[str, str]:
    """Someone opened the device's public page (scanned its QR code)."""
    return "Lost & Found Alert", f"Someone scanned the QR code for: {device_name}"


def message_left_notice(device_name: str, nickname: str, message: str) -> Tuple[str, str]:
    """A finder left a message on the device's public page."""
    return f"New Message for {device_name}", f"From: {nickname}\n\n{message}"


def diagnostic_notice(endpoint_name: str, sent_at: Optional[datetime] = None) -> Tuple[str, str]:
    sent_at = sent_at or datetime.now(timezone.utc)
    return (
        "Test Notification",
        "This is a test notification from Lost & Found Tracker.\n\n"
        f"Endpoint: {endpoint_name}\n"
        f"Time: {sent_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
    )


# ═══════════════════════════════════════════════════════════════════════════
# Target Collection
# ═══════════════════════════════════════════════════════════════════════════

def collect_targets(
    device: Optional[Device],
    endpoints: Iterable[NotificationEndpoint],
) -> List[FanoutTarget]:
    """Device-specific descriptor first, then each global endpoint."""
    targets: List[FanoutTarget] = []
    if device is not None and device.notification_url:
        targets.append(FanoutTarget(
            name=f"device:{device.name}",
            descriptor=device.notification_url,
            source="device",
        ))
    for endpoint in endpoints:
        targets.append(FanoutTarget(
            name=endpoint.name,
            descriptor=endpoint.url,
            source="global",
            endpoint_id=endpoint.id,
        ))
    return targets


# ═══════════════════════════════════════════════════════════════════════════
# Fan-out
# ═══════════════════════════════════════════════════════════════════════════

async def notify_targets(
    targets: Sequence[FanoutTarget],
    title: str,
    body: str,
    *,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FanoutReport:
    """Dispatch ``(title, body)`` to every target; one failure never stops the rest."""
    dispatcher = dispatcher or get_dispatcher()
    report = FanoutReport(title=title)

    for target in targets:
        try:
            outcome = await dispatcher.dispatch(target.descriptor, title, body)
        except Exception as exc:
            # Only reachable with a substituted dispatcher.
            logger.exception("Dispatch to %s raised", target.name)
            outcome = DispatchOutcome.failed(str(exc), FailureKind.INTERNAL)
        report.results.append(TargetResult(target=target, outcome=outcome))

    report.completed_at = datetime.now(timezone.utc)
    if report.attempted:
        # Each failure was already logged by the dispatcher; this names the targets.
        failed = [r.target.name for r in report.results if not r.outcome.ok]
        logger.log(
            logging.WARNING if failed else logging.INFO,
            "Fan-out '%s': %d/%d delivered%s",
            title, report.delivered, report.attempted,
            f" (failed: {', '.join(failed)})" if failed else "",
            extra={"target_count": report.attempted, "failed_count": report.failed},
        )
    return report


async def notify_device_event(
    device: Device,
    title: str,
    body: str,
    *,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FanoutReport:
    """Fan an event for ``device`` out to its own descriptor plus all global endpoints."""
    try:
        endpoints = store.list_endpoints(newest_first=False)
    except Exception:
        logger.exception("Failed to load global notification endpoints")
        endpoints = []
    targets = collect_targets(device, endpoints)
    if not targets:
        logger.debug("No notification endpoints configured for device %s", device.id,
                     extra={"device_id": device.id})
    return await notify_targets(targets, title, body, dispatcher=dispatcher)
