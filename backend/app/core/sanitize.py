"""
sanitize.py — Input sanitisation for user-supplied text.

Everything a finder or owner types is trimmed, length-capped, stripped of
control characters and HTML-escaped before it is stored or embedded in a
notification body.
"""

from __future__ import annotations

import re
from typing import Optional

from backend.app.notifications.channels import SUPPORTED_SCHEMES

HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}

_HTML_CHARS = re.compile(r"[&<>\"'`=/]")
# Control characters except \t \n \r
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_ALL_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")

MAX_DESCRIPTOR_LENGTH = 500


def escape_html(value: Optional[str]) -> str:
    if not value or not isinstance(value, str):
        return ""
    return _HTML_CHARS.sub(lambda m: HTML_ENTITIES[m.group(0)], value)


def sanitize_input(value: Optional[str], max_length: int = 1000) -> str:
    """Trim, truncate, drop control characters (keeping newlines/tabs) and escape."""
    if not value or not isinstance(value, str):
        return ""
    cleaned = value.strip()[:max_length]
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return escape_html(cleaned)


def sanitize_nickname(nickname: Optional[str]) -> str:
    """Nicknames are single-line: every control character is removed."""
    if not nickname or not isinstance(nickname, str):
        return ""
    cleaned = nickname.strip()[:50]
    cleaned = _ALL_CONTROL_CHARS.sub("", cleaned)
    return escape_html(cleaned)


def sanitize_message(message: Optional[str]) -> str:
    return sanitize_input(message, 2000)


def sanitize_device_name(name: Optional[str]) -> str:
    return sanitize_input(name, 100)


def sanitize_description(description: Optional[str]) -> str:
    return sanitize_input(description, 500)


def sanitize_descriptor(descriptor: Optional[str]) -> str:
    """
    Accept a notification endpoint descriptor only if it starts with a
    supported scheme; otherwise return an empty string.

    Descriptors are not HTML-escaped: they carry credentials and paths that
    must reach the backend byte for byte.
    """
    if not descriptor or not isinstance(descriptor, str):
        return ""
    trimmed = descriptor.strip()
    lowered = trimmed.lower()
    if not any(lowered.startswith(f"{scheme}://") for scheme in SUPPORTED_SCHEMES):
        return ""
    return trimmed[:MAX_DESCRIPTOR_LENGTH]
