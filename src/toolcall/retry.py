"""Bounded retry over tagged attempt outcomes.

Design goals:
- Explicit state (policy + attempt counter), no nested try/except ladders
- Two retry paths: tool misses retry immediately with a nudge, overloads
  retry after exponential backoff
- Fatal outcomes end the loop without consuming the retry budget
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import random
from typing import TYPE_CHECKING, Any

from toolcall.errors import FailureReason, InvocationFailure
from toolcall.result import Failure, Result, Success

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from toolcall.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF_S = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with exponential backoff for overload retries."""

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_S
    backoff_multiplier: float = 2.0
    #: Cap on a single backoff sleep; None leaves the doubling uncapped.
    max_backoff_s: float | None = None
    jitter: bool = False  # "full jitter" when enabled

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_retries < 0:
            raise ValueError("RetryPolicy.max_retries must be >= 0")
        if self.initial_backoff_s <= 0:
            raise ValueError("RetryPolicy.initial_backoff_s must be > 0")
        if self.backoff_multiplier < 1:
            raise ValueError("RetryPolicy.backoff_multiplier must be >= 1")
        if self.max_backoff_s is not None and self.max_backoff_s < 0:
            raise ValueError("RetryPolicy.max_backoff_s must be >= 0 or None")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


# --- Attempt outcomes ---


@dataclass(frozen=True)
class Succeeded:
    value: dict[str, Any]


@dataclass(frozen=True)
class RetryMiss:
    """The provider answered but did not invoke the expected tool."""

    detail: str
    assistant_text: str = ""
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RetryOverload:
    """The provider reported transient capacity exhaustion."""

    error: TransportError


@dataclass(frozen=True)
class Fatal:
    """Non-retryable failure for this invocation."""

    reason: FailureReason
    message: str
    error: BaseException | None = None
    hint: str | None = None


AttemptOutcome = Succeeded | RetryMiss | RetryOverload | Fatal


def compute_backoff_delay(policy: RetryPolicy, *, retry_index: int) -> float:
    """Delay before overload retry number ``retry_index`` (0-based)."""
    delay = policy.initial_backoff_s * (policy.backoff_multiplier ** max(0, retry_index))
    if policy.max_backoff_s is not None:
        delay = min(policy.max_backoff_s, delay)
    if not policy.jitter:
        return delay
    # Full jitter: random in [0, delay] to avoid thundering herd.
    return random.random() * delay  # noqa: S311


def backoff_delays(policy: RetryPolicy) -> list[float]:
    """The full overload backoff schedule, one entry per possible retry."""
    return [compute_backoff_delay(policy, retry_index=i) for i in range(policy.max_retries)]


async def run_attempts(
    attempt: Callable[[int], Awaitable[AttemptOutcome]],
    *,
    policy: RetryPolicy,
    on_miss: Callable[[RetryMiss], None] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    provider: str | None = None,
) -> Result:
    """Drive up to ``policy.max_attempts`` calls of *attempt*.

    *attempt* receives the 1-based attempt number. *on_miss* runs before a
    tool-miss retry so the caller can extend its conversation.
    """
    retries = 0
    while True:
        attempt_no = retries + 1
        outcome = await attempt(attempt_no)

        if isinstance(outcome, Succeeded):
            return Success(value=outcome.value, attempts=attempt_no, provider=provider)

        if isinstance(outcome, Fatal):
            return Failure(
                InvocationFailure(
                    outcome.reason,
                    outcome.message,
                    attempts=attempt_no,
                    provider=provider,
                    last_reason=outcome.reason,
                    last_error=outcome.error,
                    hint=outcome.hint,
                )
            )

        if retries >= policy.max_retries:
            return Failure(_exhausted(outcome, attempts=attempt_no, provider=provider))

        if isinstance(outcome, RetryMiss):
            logger.info(
                "Tool call not found (%s). Retrying with a nudge...", outcome.detail
            )
            if on_miss is not None:
                on_miss(outcome)
        else:
            delay = compute_backoff_delay(policy, retry_index=retries)
            logger.warning(
                "%s API overloaded. Retrying in %.2f seconds...",
                provider or "Provider",
                delay,
            )
            await sleep(delay)
        retries += 1


def _exhausted(
    outcome: RetryMiss | RetryOverload, *, attempts: int, provider: str | None
) -> InvocationFailure:
    if isinstance(outcome, RetryMiss):
        last_reason = FailureReason.TOOL_NOT_INVOKED
        message = f"Tool call not found in API response after {attempts} attempts ({outcome.detail})"
        last_error: BaseException | None = None
        hint = "The model kept answering in prose; try rephrasing the prompt."
    else:
        last_reason = FailureReason.PROVIDER_OVERLOAD
        message = f"Provider still overloaded after {attempts} attempts: {outcome.error}"
        last_error = outcome.error
        hint = "Try again later or raise max_retries/initial_backoff_s."
    logger.error("Max retries reached. %s", message)
    return InvocationFailure(
        FailureReason.EXHAUSTED,
        message,
        attempts=attempts,
        provider=provider,
        last_reason=last_reason,
        last_error=last_error,
        hint=hint,
    )
