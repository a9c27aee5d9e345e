"""Execution: one invocation driven attempt by attempt."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from toolcall.errors import (
    FailureReason,
    InvocationFailure,
    MalformedResponseError,
    TransportError,
)
from toolcall.providers._errors import auth_hint, describe_transport_error
from toolcall.providers.base import ToolFound
from toolcall.request import ConversationState
from toolcall.result import Failure
from toolcall.retry import (
    AttemptOutcome,
    Fatal,
    RetryMiss,
    RetryOverload,
    RetryPolicy,
    Succeeded,
    run_attempts,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from toolcall.config import ProviderConfig
    from toolcall.providers.base import ProviderAdapter
    from toolcall.request import InvocationRequest
    from toolcall.result import Result
    from toolcall.transport import Transport

logger = logging.getLogger(__name__)


async def execute_invocation(
    request: InvocationRequest,
    config: ProviderConfig,
    *,
    adapter: ProviderAdapter,
    transport: Transport,
    sleep: Callable[[float], Awaitable[Any]] | None = None,
) -> Result:
    """Run *request* against one provider until success, a fatal error, or exhaustion.

    The conversation and attempt counter are local to this call. An overall
    deadline (``request.timeout_s``) covers every attempt and backoff sleep.
    """
    conversation = ConversationState(request.prompt)
    policy = request.retry_policy or RetryPolicy(
        max_retries=request.max_retries,
        initial_backoff_s=request.initial_backoff_s,
    )
    tool_name = request.tool_name
    attempts_made = 0

    async def attempt(attempt_no: int) -> AttemptOutcome:
        nonlocal attempts_made
        attempts_made = attempt_no
        http_request = adapter.build_request(config, conversation.messages, request.tool)
        logger.info(
            "Sending request to %s API (attempt %d/%d, model=%s)",
            adapter.name,
            attempt_no,
            policy.max_attempts,
            config.model,
        )
        try:
            raw = await transport.post_json(
                http_request.url,
                headers=http_request.headers,
                payload=http_request.payload,
                timeout_s=config.http_timeout_s,
            )
        except TransportError as e:
            if e.provider is None:
                e.provider = adapter.name
            if adapter.is_overload(e):
                logger.info("Attempt %d outcome: overload (%s)", attempt_no, e)
                return RetryOverload(e)
            message = describe_transport_error(e)
            logger.error("API request failed: %s", message)
            return Fatal(
                FailureReason.TRANSPORT_FAILURE,
                message,
                error=e,
                hint=auth_hint(adapter.name, e.status_code) or e.hint,
            )
        except MalformedResponseError as e:
            logger.error("Error processing API response: %s", e)
            return Fatal(FailureReason.MALFORMED_RESPONSE, str(e), error=e)

        logger.debug("Received response from %s API: %r", adapter.name, raw)
        try:
            parsed = adapter.parse_tool_call(raw, tool_name)
        except MalformedResponseError as e:
            logger.error("Error processing API response: %s", e)
            return Fatal(FailureReason.MALFORMED_RESPONSE, str(e), error=e)

        if isinstance(parsed, ToolFound):
            logger.info("Attempt %d outcome: tool %r invoked", attempt_no, tool_name)
            return Succeeded(parsed.arguments)

        logger.info(
            "Attempt %d outcome: %s (%s); tools called: %s",
            attempt_no,
            parsed.reason,
            parsed.detail,
            ", ".join(parsed.seen_tools) or "none",
        )
        return RetryMiss(
            detail=parsed.detail,
            assistant_text=adapter.assistant_text(raw),
            raw=raw,
        )

    def nudge(miss: RetryMiss) -> None:
        conversation.add_nudge(miss.assistant_text, tool_name, raw=miss.raw)

    deadline = asyncio.timeout(request.timeout_s)
    try:
        async with deadline:
            return await run_attempts(
                attempt,
                policy=policy,
                on_miss=nudge,
                sleep=sleep or asyncio.sleep,
                provider=adapter.name,
            )
    except TimeoutError:
        if not deadline.expired():
            raise
        message = f"Invocation exceeded its {request.timeout_s}s deadline"
        logger.error("%s after %d attempt(s)", message, attempts_made)
        return Failure(
            InvocationFailure(
                FailureReason.TIMEOUT,
                message,
                attempts=attempts_made,
                provider=adapter.name,
                hint="Raise timeout_s or lower max_retries.",
            )
        )
