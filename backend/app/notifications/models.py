"""
models.py — Shared data structures for notification dispatch.

Defines:
    • OutcomeStatus      — delivered / failed
    • FailureKind        — why a dispatch failed
    • DispatchOutcome    — normalised result of one dispatch
    • NotificationRequest — (title, body, descriptor) triple
    • FanoutTarget       — one endpoint taking part in a fan-out
    • FanoutReport       — per-event delivery summary

Nothing here is persisted; every object lives for one dispatch or one
fan-out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from backend.app.notifications.errors import NotificationError


class OutcomeStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED    = "failed"


class FailureKind(str, Enum):
    """Failure taxonomy — see notifications/errors.py."""
    PARSE      = "parse"        # malformed descriptor or unknown scheme
    VALIDATION = "validation"   # scheme known, rest has the wrong shape
    DELIVERY   = "delivery"     # backend answered with a rejection
    NETWORK    = "network"      # request never completed (DNS, refused, timeout)
    INTERNAL   = "internal"     # unexpected exception inside an adapter


@dataclass(frozen=True)
class DispatchOutcome:
    """
    Result of one dispatch: ``delivered``, or ``failed`` with a reason.

    ``kind`` and ``http_status`` are only set on failures and exist for
    logging; callers branch on ``ok`` alone.
    """
    status: OutcomeStatus
    reason: Optional[str] = None
    kind: Optional[FailureKind] = None
    http_status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.DELIVERED

    @classmethod
    def delivered(cls) -> "DispatchOutcome":
        return cls(status=OutcomeStatus.DELIVERED)

    @classmethod
    def failed(
        cls,
        reason: str,
        kind: FailureKind = FailureKind.INTERNAL,
        http_status: Optional[int] = None,
    ) -> "DispatchOutcome":
        return cls(
            status=OutcomeStatus.FAILED,
            reason=reason,
            kind=kind,
            http_status=http_status,
        )

    @classmethod
    def from_error(cls, exc: "NotificationError") -> "DispatchOutcome":
        return cls.failed(exc.reason, exc.kind, exc.http_status)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"status": self.status.value}
        if not self.ok:
            d["reason"] = self.reason
            d["kind"] = self.kind.value if self.kind else None
            if self.http_status is not None:
                d["http_status"] = self.http_status
        return d


@dataclass(frozen=True)
class NotificationRequest:
    """One message bound for one endpoint descriptor."""
    title: str
    body: str
    descriptor: str


@dataclass(frozen=True)
class FanoutTarget:
    """
    An endpoint taking part in a fan-out.

    ``source`` is ``"device"`` for the device-specific descriptor and
    ``"global"`` for configured endpoints.
    """
    name: str
    descriptor: str
    source: str = "global"
    endpoint_id: Optional[str] = None


@dataclass
class TargetResult:
    target: FanoutTarget
    outcome: DispatchOutcome

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.target.name,
            "source": self.target.source,
            "endpoint_id": self.target.endpoint_id,
            **self.outcome.to_dict(),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FanoutReport:
    """Delivery summary for one logical event."""
    title: str
    results: List[TargetResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results if r.outcome.ok)

    @property
    def failed(self) -> int:
        return self.attempted - self.delivered

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "attempted": self.attempted,
            "delivered": self.delivered,
            "failed": self.failed,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "results": [r.to_dict() for r in self.results],
        }
