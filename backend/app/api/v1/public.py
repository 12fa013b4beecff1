"""
FastAPI route: Public device pages (what a finder reaches by scanning).

Provides endpoints to:
    GET  /api/v1/public/device/{code}           — device page data
    POST /api/v1/public/device/{code}/message   — leave a message

Both routes notify the owner. Notifications are queued as background
tasks: the finder's response never waits on, or reports, delivery to the
owner's endpoints.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from backend.app.api.dependencies import get_notification_dispatcher
from backend.app.api.schemas import PublicMessageCreate
from backend.app.core.captcha import verify_turnstile
from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.rate_limit import enforce_rate_limit, get_client_ip
from backend.app.core.sanitize import sanitize_message, sanitize_nickname
from backend.app.devices import store
from backend.app.notifications.dispatcher import NotificationDispatcher
from backend.app.notifications.fanout import (
    device_viewed_notice,
    message_left_notice,
    notify_device_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/public/device", tags=["public"])


@router.get("/{code}", summary="Public device page")
async def view_device(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> Dict[str, Any]:
    enforce_rate_limit(request, "public-device", "PUBLIC_READ")

    device = store.get_device_by_code(code)
    if device is None:
        raise NotFoundError("Device", code=code)

    title, body = device_viewed_notice(device.name)
    background_tasks.add_task(
        notify_device_event, device, title, body, dispatcher=dispatcher,
    )

    return device.to_public_dict(store.list_messages(device.id))


@router.post("/{code}/message", summary="Leave a message for the owner")
async def leave_message(
    code: str,
    payload: PublicMessageCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> Dict[str, Any]:
    enforce_rate_limit(request, "public-message", "PUBLIC_WRITE")

    nickname = sanitize_nickname(payload.nickname)
    message = sanitize_message(payload.message)

    await verify_turnstile(payload.turnstile_token, remote_ip=get_client_ip(request))

    if not nickname or not message:
        raise ValidationError("Nickname and message are required")

    device = store.get_device_by_code(code)
    if device is None:
        raise NotFoundError("Device", code=code)

    record = store.add_message(device.id, nickname, message)
    logger.info("Message left for device %s", device.id, extra={"device_id": device.id})

    title, body = message_left_notice(device.name, nickname, message)
    background_tasks.add_task(
        notify_device_event, device, title, body, dispatcher=dispatcher,
    )

    return record.to_dict()
