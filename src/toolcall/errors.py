"""Exception hierarchy for toolcall."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator


class ToolcallError(Exception):
    """Base exception for all toolcall errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ToolcallError):
    """Configuration validation or resolution failed."""


class TransportError(ToolcallError):
    """HTTP call failed before a usable response body was obtained.

    The transport does not interpret the failure. It surfaces the status code
    and the error body so the retry controller can classify it.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        raw_body: str = "",
        error_body: dict[str, Any] | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.raw_body = raw_body
        self.error_body = error_body
        self.provider = provider


class MalformedResponseError(ToolcallError):
    """Provider response violates the expected envelope."""


class FailureReason(str, Enum):
    """Reason codes reported to callers of ``invoke``."""

    PRECONDITION_FAILURE = "precondition_failure"
    TOOL_NOT_INVOKED = "tool_not_invoked"
    PROVIDER_OVERLOAD = "provider_overload"
    TRANSPORT_FAILURE = "transport_failure"
    MALFORMED_RESPONSE = "malformed_response"
    EXHAUSTED = "exhausted"
    TIMEOUT = "timeout"


class InvocationFailure(ToolcallError):
    """Terminal failure of one invocation.

    ``reason`` is the collapsed reason code. For ``EXHAUSTED`` failures,
    ``last_reason`` records what the final attempt ran into.
    """

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        *,
        attempts: int = 0,
        provider: str | None = None,
        last_reason: FailureReason | None = None,
        last_error: BaseException | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.reason = reason
        self.attempts = attempts
        self.provider = provider
        self.last_reason = last_reason
        self.last_error = last_error

    def __repr__(self) -> str:
        return (
            f"InvocationFailure(reason={self.reason.value!r}, "
            f"attempts={self.attempts}, message={str(self)!r})"
        )


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
