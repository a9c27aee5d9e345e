"""Shared utilities for provider implementations."""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any

from toolcall.config import AuthHeaderStyle

if TYPE_CHECKING:
    from toolcall.config import ProviderConfig


def auth_headers(config: ProviderConfig) -> dict[str, str]:
    """Attach the API key the way the config asks for."""
    key = config.api_key or ""
    if config.auth_header_style is AuthHeaderStyle.BEARER:
        return {"Authorization": f"Bearer {key}"}
    return {"x-api-key": key}


def function_parameters(schema: dict[str, Any]) -> dict[str, Any]:
    """Rebuild a tool input schema as an OpenAI ``parameters`` object.

    Only ``properties`` and ``required`` carry over; the top level is always
    an object.
    """
    properties = schema.get("properties")
    required = schema.get("required")
    return {
        "type": "object",
        "properties": deepcopy(properties) if isinstance(properties, dict) else {},
        "required": list(required) if isinstance(required, list) else [],
    }
