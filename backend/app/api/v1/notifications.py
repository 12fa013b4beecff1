"""
FastAPI route: Global notification endpoints.

Provides endpoints to:
    GET    /api/v1/notifications/schemes               — supported schemes
    GET    /api/v1/notifications/endpoints             — list endpoints
    POST   /api/v1/notifications/endpoints             — add endpoint
    GET    /api/v1/notifications/endpoints/{id}        — get endpoint
    PUT    /api/v1/notifications/endpoints/{id}        — update endpoint
    DELETE /api/v1/notifications/endpoints/{id}        — delete endpoint
    POST   /api/v1/notifications/endpoints/{id}/test   — send a test message

Every global endpoint receives every device event, in addition to the
device's own descriptor.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from backend.app.api.dependencies import get_notification_dispatcher
from backend.app.api.schemas import EndpointCreate, EndpointUpdate
from backend.app.core.errors import (
    NotFoundError,
    NotificationTestError,
    ValidationError,
)
from backend.app.core.sanitize import sanitize_descriptor
from backend.app.devices import store
from backend.app.devices.models import NotificationEndpoint
from backend.app.notifications.channels import SUPPORTED_SCHEMES
from backend.app.notifications.dispatcher import NotificationDispatcher
from backend.app.notifications.fanout import diagnostic_notice

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


def _require_endpoint(endpoint_id: str) -> NotificationEndpoint:
    endpoint = store.get_endpoint(endpoint_id)
    if endpoint is None:
        raise NotFoundError("Endpoint", id=endpoint_id)
    return endpoint


def _clean_url(url: str) -> str:
    cleaned = sanitize_descriptor(url)
    if not cleaned:
        raise ValidationError(
            f"Unsupported notification URL. Supported schemes: {', '.join(SUPPORTED_SCHEMES)}",
            field="url",
        )
    return cleaned


@router.get("/schemes", summary="List supported descriptor schemes")
async def list_schemes() -> Dict[str, Any]:
    return {"schemes": list(SUPPORTED_SCHEMES)}


@router.get("/endpoints", summary="List global notification endpoints")
async def list_endpoints() -> List[Dict[str, Any]]:
    return [e.to_dict() for e in store.list_endpoints()]


@router.post("/endpoints", summary="Add a global notification endpoint")
async def create_endpoint(request: EndpointCreate) -> Dict[str, Any]:
    name = request.name.strip()
    if not name or not request.url.strip():
        raise ValidationError("Name and URL are required")
    endpoint = store.create_endpoint(name, _clean_url(request.url))
    return endpoint.to_dict()


@router.get("/endpoints/{endpoint_id}", summary="Get a notification endpoint")
async def get_endpoint(endpoint_id: str) -> Dict[str, Any]:
    return _require_endpoint(endpoint_id).to_dict()


@router.put("/endpoints/{endpoint_id}", summary="Update a notification endpoint")
async def update_endpoint(endpoint_id: str, request: EndpointUpdate) -> Dict[str, Any]:
    _require_endpoint(endpoint_id)
    name = request.name.strip() if request.name else None
    url = _clean_url(request.url) if request.url else None
    endpoint = store.update_endpoint(endpoint_id, name=name, url=url)
    return endpoint.to_dict()


@router.delete("/endpoints/{endpoint_id}", summary="Delete a notification endpoint")
async def delete_endpoint(endpoint_id: str) -> Dict[str, Any]:
    if not store.delete_endpoint(endpoint_id):
        raise NotFoundError("Endpoint", id=endpoint_id)
    return {"success": True}


@router.post(
    "/endpoints/{endpoint_id}/test",
    summary="Send a test notification",
    description=(
        "Dispatches a test message to this endpoint and waits for the result. "
        "On failure the backend's reason is returned verbatim (400) so the "
        "descriptor can be corrected."
    ),
)
async def send_test_notification(
    endpoint_id: str,
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> Dict[str, Any]:
    endpoint = _require_endpoint(endpoint_id)
    title, body = diagnostic_notice(endpoint.name)
    outcome = await dispatcher.dispatch(endpoint.url, title, body)
    if not outcome.ok:
        raise NotificationTestError(outcome.reason or "Delivery failed", endpoint_id=endpoint.id)
    return {"success": True, "message": "Test notification sent!"}
