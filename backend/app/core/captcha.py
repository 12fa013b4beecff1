"""
captcha.py — Cloudflare Turnstile verification for public messages.

Verification only runs when ``TURNSTILE_SECRET_KEY`` is configured AND the
client supplied a token; otherwise the message is accepted as-is.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import CaptchaError

logger = logging.getLogger(__name__)


async def verify_turnstile(
    token: Optional[str],
    *,
    remote_ip: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """
    Raise CaptchaError if Turnstile rejects ``token``.

    A verification service outage also rejects the message: a captcha that
    cannot be checked is treated as failed.
    """
    secret = settings.TURNSTILE_SECRET_KEY
    if not secret or not token:
        return

    data = {"secret": secret, "response": token}
    if remote_ip and remote_ip != "unknown":
        data["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
            response = await client.post(settings.TURNSTILE_VERIFY_URL, data=data)
            verification = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Turnstile verification unavailable: %s", exc)
        raise CaptchaError() from exc

    if not verification.get("success"):
        logger.info("Turnstile rejected token: %s", verification.get("error-codes"))
        raise CaptchaError()
