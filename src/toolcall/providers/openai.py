"""OpenAI Chat Completions adapter."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from toolcall.errors import MalformedResponseError
from toolcall.providers._errors import error_code, error_type, is_overload_status
from toolcall.providers._utils import auth_headers, function_parameters
from toolcall.providers.base import HttpRequest, ParseOutcome, ToolFound, ToolMissing

if TYPE_CHECKING:
    from toolcall.config import ProviderConfig
    from toolcall.errors import TransportError
    from toolcall.request import ToolDeclaration

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKER = "rate_limit_exceeded"
# Billing exhaustion shares status 429 but does not clear with time.
_QUOTA_MARKER = "insufficient_quota"


class OpenAIAdapter:
    """Encode requests for and parse ``tool_calls`` from Chat Completions."""

    name = "openai"

    @staticmethod
    def _to_openai_tool(tool: ToolDeclaration) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": function_parameters(dict(tool.input_schema)),
            },
        }

    def build_request(
        self,
        config: ProviderConfig,
        messages: list[dict[str, str]],
        tool: ToolDeclaration,
    ) -> HttpRequest:
        """Build ``{model, messages, tools}`` with the system preamble first."""
        payload: dict[str, Any] = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": config.system_preamble},
                *messages,
            ],
            "tools": [self._to_openai_tool(tool)],
        }
        return HttpRequest(
            url=str(config.endpoint_url), headers=auth_headers(config), payload=payload
        )

    @staticmethod
    def _message(raw: dict[str, Any]) -> dict[str, Any]:
        choices = raw.get("choices")
        if not isinstance(choices, list) or not choices:
            raise MalformedResponseError(
                "Unexpected API response format: choices array not found"
            )
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise MalformedResponseError(
                "Unexpected API response format: choices[0].message not found"
            )
        return message

    def parse_tool_call(
        self, raw: dict[str, Any], expected_tool_name: str
    ) -> ParseOutcome:
        """Scan ``tool_calls`` by name, then the legacy ``function_call`` field."""
        message = self._message(raw)
        seen: list[str] = []
        bad_arguments = False

        candidates: list[Any] = []
        tool_calls = message.get("tool_calls")
        if isinstance(tool_calls, list):
            candidates.extend(
                call.get("function") for call in tool_calls if isinstance(call, dict)
            )
        else:
            candidates.append(message.get("function_call"))

        for function in candidates:
            if not isinstance(function, dict):
                continue
            name = function.get("name")
            if isinstance(name, str):
                seen.append(name)
            if name != expected_tool_name:
                continue
            arguments = _decode_arguments(function.get("arguments"))
            if arguments is None:
                bad_arguments = True
                logger.warning(
                    "Tool %r was called with undecodable arguments", expected_tool_name
                )
                continue
            return ToolFound(arguments=arguments)

        if bad_arguments:
            return ToolMissing(
                reason="invalid_arguments",
                detail=f"arguments for {expected_tool_name!r} are not a JSON object",
                seen_tools=tuple(seen),
            )
        if seen:
            return ToolMissing(
                reason="name_mismatch",
                detail=f"model called {', '.join(seen)} instead of {expected_tool_name!r}",
                seen_tools=tuple(seen),
            )
        return ToolMissing(
            reason="not_called", detail=f"no tool call for {expected_tool_name!r}"
        )

    def assistant_text(self, raw: dict[str, Any]) -> str:
        try:
            message = self._message(raw)
        except MalformedResponseError:
            return ""
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def is_overload(self, error: TransportError) -> bool:
        """``error.type`` or ``error.code`` of ``rate_limit_exceeded``, or a capacity status.

        ``insufficient_quota`` is never an overload, whatever the status.
        """
        body = error.error_body
        markers = (error_type(body), error_code(body))
        if _QUOTA_MARKER in markers:
            return False
        if _RATE_LIMIT_MARKER in markers:
            return True
        return is_overload_status(error)


def _decode_arguments(raw_arguments: Any) -> dict[str, Any] | None:
    """Decode a ``function.arguments`` string into a mapping, or return None."""
    if isinstance(raw_arguments, dict):
        return raw_arguments
    if not isinstance(raw_arguments, str):
        return None
    try:
        decoded = json.loads(raw_arguments)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None
