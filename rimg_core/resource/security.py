"""Redaction helpers for logging resource configuration."""

from __future__ import annotations

from typing import Any, Mapping

_SENSITIVE_KEYS = ("password", "passphrase", "repository_key", "tls_key", "token")


def redact_secret(value: str) -> str:
    """Fully mask key material; only the presence of a value is kept."""
    return "***" if value else value


def redact_payload_for_log(payload: Mapping[str, Any]) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for key, value in payload.items():
        lower = str(key).lower()
        if isinstance(value, Mapping):
            redacted[key] = redact_payload_for_log(value)
            continue
        if lower.endswith("_key_id"):
            redacted[key] = value
            continue
        if any(item in lower for item in _SENSITIVE_KEYS) and isinstance(value, str):
            redacted[key] = redact_secret(value)
            continue
        redacted[key] = value
    return redacted
