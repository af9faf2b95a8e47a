"""Secret sanitization utilities for logging and error messages.

This module provides utilities to sanitize sensitive information (RCON
passwords embedded in connection URLs, webhook tokens) from strings, URLs, and
structured data before logging or displaying in error messages.

Examples:
    >>> sanitize_url("ws://127.0.0.1:28016/hunter2")
    'ws://127.0.0.1:28016/<REDACTED>'

    >>> sanitize_url("https://discord.com/api/webhooks/123/secret_token")
    'https://discord.com/api/webhooks/123/<REDACTED>'

    >>> sanitize_value({"password": "hunter2", "port": 28016})
    {'password': '<REDACTED>', 'port': 28016}
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TypeIs

# Redaction marker for sanitized values
REDACTED = "<REDACTED>"

# WebRCON: ws://<host>:<port>/<password>
_WEBRCON_URL_PATTERN = re.compile(
    r"(wss?://[^/\s]+/)([^\s/?#]+)",
    re.IGNORECASE,
)

# Discord: https://discord.com/api/webhooks/<id>/<token>
# Discord: https://discordapp.com/api/webhooks/<id>/<token>
_DISCORD_WEBHOOK_PATTERN = re.compile(
    r"(https?://(?:[\w-]+\.)?discord(?:app)?\.com/api/webhooks/\d+/)([^/?#\s]+)",
    re.IGNORECASE,
)

# Pattern for URLs with tokens in query parameters
_GENERIC_TOKEN_IN_QUERY = re.compile(
    r"([?&](?:token|api[-_]?key|auth|secret|password)=)([^&\s]+)",
    re.IGNORECASE,
)

# Sensitive field name patterns (case-insensitive)
_SENSITIVE_FIELD_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r".*token.*",
        r".*secret.*",
        r".*password.*",
        r".*credential.*",
        r".*webhook.*",
    ]
]


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Examples:
        >>> is_sensitive_field("password")
        True
        >>> is_sensitive_field("discord_webhook")
        True
        >>> is_sensitive_field("host")
        False
    """
    return any(pattern.match(field_name) for pattern in _SENSITIVE_FIELD_PATTERNS)


def sanitize_url(url: str) -> str:
    """Sanitize secrets from URLs (or free text containing URLs).

    The URL structure is preserved to keep debugging information (scheme,
    host, port) while removing the secret component.

    Args:
        url: The URL or text to sanitize

    Returns:
        Sanitized text with secrets replaced by the REDACTED marker
    """
    if not url:
        return url

    sanitized = _WEBRCON_URL_PATTERN.sub(rf"\1{REDACTED}", url)
    sanitized = _DISCORD_WEBHOOK_PATTERN.sub(rf"\1{REDACTED}", sanitized)
    sanitized = _GENERIC_TOKEN_IN_QUERY.sub(rf"\1{REDACTED}", sanitized)
    return sanitized


def _is_primitive(value: object) -> TypeIs[str | int | float | bool | None]:
    return isinstance(value, (str, int, float, bool, type(None)))


def _is_mapping(value: object) -> TypeIs[Mapping[str, object]]:
    return isinstance(value, Mapping)


def _is_sequence(value: object) -> TypeIs[Sequence[object]]:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def sanitize_value(
    value: object,
    *,
    field_name: str | None = None,
) -> object:
    """Recursively sanitize sensitive values from structured data.

    Args:
        value: The value to sanitize (can be any type)
        field_name: Optional field name for context-aware sanitization

    Returns:
        Sanitized value with secrets replaced by REDACTED marker
    """
    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if _is_primitive(value):
        if type(value) is str:
            return sanitize_url(value)
        return value

    if _is_mapping(value):
        return {key: sanitize_value(val, field_name=str(key)) for key, val in value.items()}

    if _is_sequence(value):
        sanitized_items: list[object] = [sanitize_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(sanitized_items)
        return sanitized_items

    return sanitize_url(str(value))


def sanitize_exception(exc: BaseException) -> str:
    """Render an exception as ``Type: message`` with secrets removed.

    Examples:
        >>> sanitize_exception(OSError("connect to ws://10.0.0.2:28016/pw failed"))
        'OSError: connect to ws://10.0.0.2:28016/<REDACTED> failed'
    """
    return f"{type(exc).__name__}: {sanitize_url(str(exc))}"


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Sanitize a tuple of logging arguments."""
    return tuple(sanitize_value(arg) for arg in args)
