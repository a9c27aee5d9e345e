"""Result primitives returned by ``invoke``.

Failures are a predictable part of the data flow: callers branch on the
result type instead of wrapping every call in broad try/except blocks.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from toolcall.errors import InvocationFailure

StructuredResult = dict[str, Any]


@dataclasses.dataclass(frozen=True, slots=True)
class Success:
    """Structured tool arguments extracted from a provider response."""

    value: StructuredResult
    attempts: int = 1
    provider: str | None = None

    @property
    def ok(self) -> bool:
        return True


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A terminal invocation failure."""

    error: InvocationFailure

    @property
    def ok(self) -> bool:
        return False

    @property
    def attempts(self) -> int:
        return self.error.attempts


Result = Success | Failure
