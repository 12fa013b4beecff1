"""
codes.py — Public device codes.

New devices get a lowercase alphanumeric code; regenerated codes use an
upper-case alphabet without look-alike characters (no 0/O, 1/I) since
they are more likely to be typed from a printed label.
"""

from __future__ import annotations

import secrets

CODE_LENGTH = 8
INITIAL_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
REGENERATED_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_code(alphabet: str = INITIAL_ALPHABET, length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))
