"""Shared provider-side error helpers.

Overload detection looks at the structured error body first and falls back
to well-known capacity status codes, so retries stay bounded and
deterministic without matching on free-text messages.
"""

from __future__ import annotations

from typing import Any

from toolcall._http import AUTH_STATUS_CODES, OVERLOAD_STATUS_CODES
from toolcall.config import api_key_env_var
from toolcall.errors import TransportError


def _error_object(body: dict[str, Any] | None) -> dict[str, Any]:
    if not isinstance(body, dict):
        return {}
    error = body.get("error")
    return error if isinstance(error, dict) else {}


def error_type(body: dict[str, Any] | None) -> str | None:
    """Return ``error.type`` from a decoded provider error body."""
    value = _error_object(body).get("type")
    return value if isinstance(value, str) else None


def error_code(body: dict[str, Any] | None) -> str | None:
    """Return ``error.code`` from a decoded provider error body."""
    value = _error_object(body).get("code")
    return value if isinstance(value, str) else None


def error_message(body: dict[str, Any] | None) -> str | None:
    value = _error_object(body).get("message")
    return value if isinstance(value, str) else None


def is_overload_status(error: TransportError) -> bool:
    return isinstance(error.status_code, int) and error.status_code in OVERLOAD_STATUS_CODES


def auth_hint(provider: str, status_code: int | None) -> str | None:
    """Generate a hint for auth errors where naming the env var is useful."""
    if status_code in AUTH_STATUS_CODES:
        env_var = api_key_env_var(provider)
        return f"Check credentials/permissions (try setting {env_var} or TOOLCALL_API_KEY)."
    return None


def describe_transport_error(error: TransportError) -> str:
    """One-line description including the provider's own message, if any."""
    detail = error_message(error.error_body)
    kind = error_type(error.error_body) or error_code(error.error_body)
    parts = [str(error)]
    if kind:
        parts.append(f"[{kind}]")
    if detail:
        parts.append(detail)
    return " ".join(parts)
