"""Redaction of secret material from error and log context."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# Key names that hold secret material
SECRET_KEY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"blind", re.IGNORECASE),
    re.compile(r"share", re.IGNORECASE),
    re.compile(r"seed", re.IGNORECASE),
    re.compile(r"nonce", re.IGNORECASE),
    re.compile(r"(?:private|secret|chain|stretched)[_-]?key", re.IGNORECASE),
    re.compile(r"^key$", re.IGNORECASE),
    re.compile(r"scalar", re.IGNORECASE),
]

# Value formats that look like raw key material
SECRET_VALUE_PATTERNS: list[re.Pattern[str]] = [
    # 32 or 64 byte hex blobs (scalars, derived keys)
    re.compile(r"\b[0-9a-fA-F]{64}(?:[0-9a-fA-F]{64})?\b"),
    # Argon2 password hash strings
    re.compile(r"\$argon2(?:id|i|d)\$\S+"),
    # Generic assignments
    re.compile(r"(?:password|secret|blind)\s*=\s*\S+", re.IGNORECASE),
]


def _is_secret_key(key: str) -> bool:
    return any(p.search(key) for p in SECRET_KEY_PATTERNS)


def _redact_value(value: str) -> str:
    result = value
    for pattern in SECRET_VALUE_PATTERNS:
        result = pattern.sub(REDACTED, result)
    return result


def redact_state(state: Any, _depth: int = 0) -> Any:
    """Recursively redact secrets from a context object.

    - Dict keys matching secret patterns get their values replaced.
    - Raw ``bytes``/``bytearray`` values are never echoed.
    - String values that look like key material are redacted inline.
    - Recurses into nested dicts, lists and tuples.
    """
    if _depth > 50:
        return state

    if isinstance(state, dict):
        result = {}
        for k, v in state.items():
            if isinstance(k, str) and _is_secret_key(k):
                result[k] = REDACTED
            else:
                result[k] = redact_state(v, _depth + 1)
        return result

    if isinstance(state, (list, tuple)):
        return [redact_state(item, _depth + 1) for item in state]

    if isinstance(state, (bytes, bytearray, memoryview)):
        return REDACTED

    if isinstance(state, str):
        return _redact_value(state)

    return state
