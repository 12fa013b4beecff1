"""
rate_limit.py — Process-scoped fixed-window rate limiter.

Each identifier (usually "<scope>:<client-ip>") owns one window entry:

    count     — requests seen in the current window
    reset_at  — epoch seconds at which the window closes

The limiter is created in the application lifespan and stored on
``app.state.rate_limiter``; it is not a module-level singleton. A background
task started in the same lifespan calls ``sweep()`` periodically to drop
expired windows, and the map is bounded by ``max_entries`` (oldest
identifiers are evicted first).

State is per-process. Running several workers multiplies the effective
limits by the worker count.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.requests import Request

from backend.app.core.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """Max requests allowed per window."""
    window_seconds: float
    max_requests: int


RATE_LIMITS: Dict[str, RateLimitRule] = {
    # Public endpoints
    "PUBLIC_READ":  RateLimitRule(60, 30),
    "PUBLIC_WRITE": RateLimitRule(60, 5),
    # Owner endpoints
    "AUTH_READ":    RateLimitRule(60, 100),
    "AUTH_WRITE":   RateLimitRule(60, 30),
    # Brute-force protection
    "LOGIN":        RateLimitRule(15 * 60, 5),
}


@dataclass
class WindowEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None


class RateLimiter:
    """
    Bounded map of identifier → window entry.

    Parameters
    ----------
    max_entries : int
        Upper bound on tracked identifiers. When exceeded, expired windows
        are swept first and then the least recently created entries are
        evicted.
    clock : callable
        Returns the current time in epoch seconds. Injected by tests.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.time,
    ):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, WindowEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def check(self, identifier: str, rule: RateLimitRule) -> RateLimitResult:
        """Count one request for ``identifier`` and report whether it is allowed."""
        now = self._clock()
        entry = self._entries.get(identifier)

        if entry is None or now > entry.reset_at:
            entry = WindowEntry(count=1, reset_at=now + rule.window_seconds)
            self._entries.pop(identifier, None)
            self._entries[identifier] = entry
            self._enforce_bound()
            return RateLimitResult(
                allowed=True,
                remaining=rule.max_requests - 1,
                reset_at=entry.reset_at,
            )

        entry.count += 1

        if entry.count > rule.max_requests:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=entry.reset_at,
                retry_after=math.ceil(entry.reset_at - now),
            )

        return RateLimitResult(
            allowed=True,
            remaining=rule.max_requests - entry.count,
            reset_at=entry.reset_at,
        )

    def sweep(self) -> int:
        """Drop expired windows. Returns the number removed."""
        now = self._clock()
        expired = [key for key, e in self._entries.items() if now > e.reset_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def _enforce_bound(self) -> None:
        if len(self._entries) <= self.max_entries:
            return
        self.sweep()
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Rate-limit map full, evicted %s", evicted)


async def run_periodic_sweep(limiter: RateLimiter, interval_seconds: float) -> None:
    """Sweep expired windows forever; cancelled at application shutdown."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = limiter.sweep()
        if removed:
            logger.debug("Rate-limit sweep removed %d expired windows", removed)


def get_client_ip(request: Request) -> str:
    """Resolve the client IP, honouring common reverse-proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip

    return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request, scope: str, rule_name: str) -> RateLimitResult:
    """
    Apply ``RATE_LIMITS[rule_name]`` to the calling client within ``scope``.

    Raises RateLimitError (429) when the window is exhausted. A no-op when
    the application has no limiter configured.
    """
    limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
    rule = RATE_LIMITS[rule_name]
    if limiter is None:
        return RateLimitResult(allowed=True, remaining=rule.max_requests, reset_at=0.0)

    identifier = f"{scope}:{get_client_ip(request)}"
    result = limiter.check(identifier, rule)
    if not result.allowed:
        logger.warning("Rate limit exceeded for %s", identifier)
        raise RateLimitError(
            retry_after=result.retry_after or 60,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )
    return result
