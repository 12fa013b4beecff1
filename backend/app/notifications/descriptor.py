"""
descriptor.py — Endpoint descriptor parsing.

A descriptor is a compact URL-like string naming a notification backend
and its credentials/target::

    ntfy://my-topic
    tgram://123456:ABC-DEF/987654
    https://hooks.example.com/lost-and-found

Only the ``scheme://`` prefix is parsed here. The remainder ("rest") is
opaque until the channel registered for that scheme sub-parses it.
"""

from __future__ import annotations

import re
from typing import Tuple

from backend.app.notifications.errors import ParseError

INVALID_FORMAT_REASON = "Invalid endpoint descriptor format"

# ASCII word-char scheme, then a non-empty single-line remainder
_DESCRIPTOR_RE = re.compile(r"(\w+)://(.+)", re.ASCII)


def parse_descriptor(raw: str) -> Tuple[str, str]:
    """
    Split a descriptor into ``(scheme, rest)``.

    The scheme is lower-cased; ``rest`` is returned verbatim.

    Raises
    ------
    ParseError
        If ``raw`` is not of the form ``<word-chars>://<something>``.
    """
    if not isinstance(raw, str):
        raise ParseError(INVALID_FORMAT_REASON)
    match = _DESCRIPTOR_RE.fullmatch(raw)
    if match is None:
        raise ParseError(INVALID_FORMAT_REASON)
    scheme, rest = match.groups()
    return scheme.lower(), rest
