"""
errors.py — Notification failure taxonomy.

    ParseError       descriptor malformed or scheme unrecognised (no I/O)
    ValidationError  scheme recognised, rest has the wrong shape (no I/O)
    DeliveryError    backend reachable but rejected the message
    NetworkError     request could not be completed

These exceptions never leave the notifications package: channel adapters
and the dispatcher convert them to ``DispatchOutcome.failed`` at their
boundary.
"""

from __future__ import annotations

from typing import Optional

from backend.app.notifications.models import FailureKind


class NotificationError(Exception):
    kind: FailureKind = FailureKind.INTERNAL

    def __init__(self, reason: str, *, http_status: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.http_status = http_status


class ParseError(NotificationError):
    kind = FailureKind.PARSE


class ValidationError(NotificationError):
    kind = FailureKind.VALIDATION


class DeliveryError(NotificationError):
    kind = FailureKind.DELIVERY


class NetworkError(NotificationError):
    kind = FailureKind.NETWORK
