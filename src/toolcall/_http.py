"""Small HTTP-related constants shared across toolcall.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Status codes treated as provider capacity signals regardless of error body.
# 529 is Anthropic's "overloaded" status.
OVERLOAD_STATUS_CODES: frozenset[int] = frozenset({429, 503, 529})

# Status codes where the API key is the likely culprit.
AUTH_STATUS_CODES: frozenset[int] = frozenset({401, 403})

JSON_CONTENT_TYPE = "application/json"
