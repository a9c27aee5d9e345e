"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from toolcall.errors import MalformedResponseError
from toolcall.providers._errors import error_type, is_overload_status
from toolcall.providers._utils import auth_headers
from toolcall.providers.base import HttpRequest, ParseOutcome, ToolFound, ToolMissing

if TYPE_CHECKING:
    from toolcall.config import ProviderConfig
    from toolcall.errors import TransportError
    from toolcall.request import ToolDeclaration

ANTHROPIC_VERSION = "2023-06-01"
_OVERLOADED_ERROR_TYPE = "overloaded_error"


class AnthropicAdapter:
    """Encode requests for and parse ``tool_use`` blocks from the Messages API."""

    name = "anthropic"

    def build_request(
        self,
        config: ProviderConfig,
        messages: list[dict[str, str]],
        tool: ToolDeclaration,
    ) -> HttpRequest:
        """Build ``{model, max_tokens, messages, tools}`` with the tool as declared."""
        payload: dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_tokens,
            "messages": messages,
            "tools": [tool.to_dict()],
        }
        headers = {**auth_headers(config), "anthropic-version": ANTHROPIC_VERSION}
        return HttpRequest(url=str(config.endpoint_url), headers=headers, payload=payload)

    def parse_tool_call(
        self, raw: dict[str, Any], expected_tool_name: str
    ) -> ParseOutcome:
        """Return the first ``tool_use`` block carrying a non-empty ``input`` mapping.

        The block name is not compared against *expected_tool_name*: only one
        tool is declared per request.
        """
        content = raw.get("content")
        if not isinstance(content, list):
            raise MalformedResponseError(
                "Unexpected API response format: content array not found"
            )

        seen: list[str] = []
        for block in content:
            if not isinstance(block, dict) or block.get("type") != "tool_use":
                continue
            block_name = block.get("name")
            if isinstance(block_name, str):
                seen.append(block_name)
            arguments = block.get("input")
            if isinstance(arguments, dict) and arguments:
                return ToolFound(arguments=arguments)

        detail = (
            f"tool_use blocks without arguments: {', '.join(seen)}"
            if seen
            else f"no tool_use block for {expected_tool_name!r}"
        )
        return ToolMissing(reason="not_called", detail=detail, seen_tools=tuple(seen))

    def assistant_text(self, raw: dict[str, Any]) -> str:
        content = raw.get("content")
        if not isinstance(content, list):
            return ""
        texts = [
            block["text"]
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        ]
        return "\n\n".join(texts)

    def is_overload(self, error: TransportError) -> bool:
        """``{"type": "error", "error": {"type": "overloaded_error"}}`` or a capacity status."""
        if error_type(error.error_body) == _OVERLOADED_ERROR_TYPE:
            return True
        return is_overload_status(error)
