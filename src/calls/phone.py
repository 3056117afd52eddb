"""Phone endpoint normalization helpers."""

from __future__ import annotations

import re

CLIENT_PREFIX = "client:"

_E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
_NON_DIAL_CHARS = re.compile(r"[^\d+]")


def is_client_address(value: str) -> bool:
    return value.strip().lower().startswith(CLIENT_PREFIX)


def client_name(value: str) -> str:
    """Strip the ``client:`` prefix from a browser endpoint."""

    stripped = value.strip()
    return stripped[len(CLIENT_PREFIX):] if is_client_address(stripped) else stripped


def is_valid_e164(value: str) -> bool:
    return bool(_E164_PATTERN.match(value))


def sanitize_endpoint(value: str) -> str:
    """Normalize a dialed endpoint.

    Browser client addresses are kept as-is. Anything else is treated as a phone
    number: punctuation and spaces are dropped and numbers without a leading ``+``
    are assumed to be North American (``+1``).
    """

    stripped = value.strip()
    if is_client_address(stripped):
        return f"{CLIENT_PREFIX}{client_name(stripped)}"
    cleaned = _NON_DIAL_CHARS.sub("", stripped)
    return cleaned if cleaned.startswith("+") else f"+1{cleaned}"
