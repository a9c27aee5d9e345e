"""toolcall: structured tool invocations against generative-AI providers.

Public API:
    - invoke(): Ask a provider to call one declared tool; return its arguments
    - invoke_sync(): Blocking wrapper around invoke()
    - ToolDeclaration / InvocationRequest: Explicit input types
    - ProviderConfig / resolve_provider_config(): Provider selection and keys
    - Success / Failure: Result types
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from toolcall.config import (
    AuthHeaderStyle,
    ProviderConfig,
    ProviderKind,
    api_key_env_var,
    resolve_provider_config,
)
from toolcall.errors import (
    ConfigurationError,
    FailureReason,
    InvocationFailure,
    MalformedResponseError,
    ToolcallError,
    TransportError,
)
from toolcall.execute import execute_invocation
from toolcall.providers import get_adapter
from toolcall.request import InvocationRequest, ToolDeclaration
from toolcall.result import Failure, Result, StructuredResult, Success
from toolcall.retry import DEFAULT_INITIAL_BACKOFF_S, DEFAULT_MAX_RETRIES, RetryPolicy
from toolcall.transport import HttpxTransport, Transport

if TYPE_CHECKING:
    from collections.abc import Mapping

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("toolcall-ai")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("toolcall").addHandler(logging.NullHandler())

logger = logging.getLogger(__name__)


async def invoke(
    prompt: str | InvocationRequest,
    tool: ToolDeclaration | Mapping[str, Any] | None = None,
    expected_tool_name: str | None = None,
    *,
    config: ProviderConfig,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_S,
    timeout_s: float | None = None,
    retry_policy: RetryPolicy | None = None,
    transport: Transport | None = None,
) -> Result:
    """Ask the configured provider to call *tool* and return its arguments.

    Args:
        prompt: The user prompt, or a prebuilt ``InvocationRequest`` (the
            remaining request arguments are then ignored).
        tool: The single tool the model should call.
        expected_tool_name: Name the caller expects; defaults to ``tool.name``.
        config: Provider snapshot, typically from ``resolve_provider_config()``.
        max_retries: Extra attempts allowed after the first one.
        initial_backoff_s: First overload backoff; doubles on each retry.
        timeout_s: Optional overall deadline for the whole invocation.
        retry_policy: Full backoff policy (multiplier, cap, jitter). When given,
            it supersedes ``max_retries`` and ``initial_backoff_s``.
        transport: Optional transport; an ``HttpxTransport`` is created and
            closed per call when omitted.

    Returns:
        ``Success`` whose ``value`` is the tool's argument mapping, or
        ``Failure`` whose ``error`` is an ``InvocationFailure``.

    Example:
        config = resolve_provider_config()
        result = await invoke(
            "Suggest a landing page section",
            {"name": "suggest_item", "description": "...", "input_schema": schema},
            config=config,
        )
        if result.ok:
            print(result.value)
    """
    request = _normalize_request(
        prompt,
        tool,
        expected_tool_name,
        max_retries=max_retries,
        initial_backoff_s=initial_backoff_s,
        timeout_s=timeout_s,
        retry_policy=retry_policy,
    )

    if not config.has_api_key:
        env_var = api_key_env_var(config.provider)
        logger.error("AI API key is not set. Configure it before calling %s.", config.provider.value)
        return Failure(
            InvocationFailure(
                FailureReason.PRECONDITION_FAILURE,
                f"API key required for {config.provider.value}",
                attempts=0,
                provider=config.provider.value,
                hint=f"Set {env_var} or TOOLCALL_API_KEY, or pass ProviderConfig(api_key=...).",
            )
        )

    adapter = get_adapter(config.provider)
    logger.info("Using AI provider: %s (model=%s)", adapter.name, config.model)

    owned: HttpxTransport | None = None
    if transport is None:
        owned = HttpxTransport(timeout_s=config.http_timeout_s)
        transport = owned

    try:
        return await execute_invocation(
            request, config, adapter=adapter, transport=transport
        )
    finally:
        if owned is not None:
            try:
                await owned.aclose()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Cleanup should never mask the primary result.
                logger.warning("Transport cleanup failed: %s", exc)


def invoke_sync(
    prompt: str | InvocationRequest,
    tool: ToolDeclaration | Mapping[str, Any] | None = None,
    expected_tool_name: str | None = None,
    **kwargs: Any,
) -> Result:
    """Blocking ``invoke`` for callers without an event loop."""
    return asyncio.run(invoke(prompt, tool, expected_tool_name, **kwargs))


def _normalize_request(
    prompt: str | InvocationRequest,
    tool: ToolDeclaration | Mapping[str, Any] | None,
    expected_tool_name: str | None,
    *,
    max_retries: int,
    initial_backoff_s: float,
    timeout_s: float | None,
    retry_policy: RetryPolicy | None,
) -> InvocationRequest:
    if isinstance(prompt, InvocationRequest):
        return prompt
    if tool is None:
        raise ConfigurationError(
            "A tool declaration is required",
            hint="Pass tool=ToolDeclaration(name=..., description=..., input_schema=...).",
        )
    declaration = tool if isinstance(tool, ToolDeclaration) else ToolDeclaration.from_dict(tool)
    return InvocationRequest(
        prompt=prompt,
        tool=declaration,
        expected_tool_name=expected_tool_name,
        max_retries=max_retries,
        initial_backoff_s=initial_backoff_s,
        timeout_s=timeout_s,
        retry_policy=retry_policy,
    )


# Re-export for convenience
__all__ = [
    "AuthHeaderStyle",
    "ConfigurationError",
    "Failure",
    "FailureReason",
    "HttpxTransport",
    "InvocationFailure",
    "InvocationRequest",
    "MalformedResponseError",
    "ProviderConfig",
    "ProviderKind",
    "Result",
    "RetryPolicy",
    "StructuredResult",
    "Success",
    "ToolDeclaration",
    "ToolcallError",
    "Transport",
    "TransportError",
    "invoke",
    "invoke_sync",
    "resolve_provider_config",
]
