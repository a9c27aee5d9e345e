"""Test helpers (small, reusable doubles and response builders).

Keep this file tiny and purpose-built: the builders produce the minimal
provider wire shapes the parsers look at, nothing more.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
import json
from typing import Any

from toolcall.errors import TransportError


@dataclass
class FakeTransport:
    """Transport test double that replays scripted responses.

    Each entry in ``responses`` is either a decoded JSON body or an exception
    to raise. The last entry repeats once the script runs out. Calls are
    recorded with a deep copy of the payload so later conversation growth
    does not rewrite history.
    """

    responses: list[Any] = field(default_factory=list)
    calls: list[dict[str, Any]] = field(default_factory=list)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def post_json(
        self,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
        timeout_s: float | None = None,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "url": url,
                "headers": dict(headers),
                "payload": copy.deepcopy(payload),
                "timeout_s": timeout_s,
            }
        )
        if not self.responses:
            raise AssertionError("FakeTransport has no scripted responses")
        item = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(item, BaseException):
            raise item
        return copy.deepcopy(item)


# =============================================================================
# Anthropic wire shapes
# =============================================================================


def anthropic_tool_use(
    arguments: dict[str, Any], *, name: str = "suggest_item", text: str = ""
) -> dict[str, Any]:
    content: list[dict[str, Any]] = []
    if text:
        content.append({"type": "text", "text": text})
    content.append(
        {"type": "tool_use", "id": "toolu_01", "name": name, "input": arguments}
    )
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "content": content,
        "stop_reason": "tool_use",
    }


def anthropic_text(text: str) -> dict[str, Any]:
    return {
        "id": "msg_02",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
    }


def anthropic_overloaded() -> TransportError:
    body = {
        "type": "error",
        "error": {"type": "overloaded_error", "message": "Overloaded"},
    }
    # Anthropic also answers overloads with 529; 500 keeps the body marker decisive.
    return TransportError(
        "POST https://api.anthropic.com/v1/messages returned HTTP 500",
        status_code=500,
        raw_body=json.dumps(body),
        error_body=body,
    )


# =============================================================================
# OpenAI wire shapes
# =============================================================================


def _openai_message(message: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": message, "finish_reason": "tool_calls"}],
    }


def openai_tool_calls(
    *calls: tuple[str, str], content: str | None = None
) -> dict[str, Any]:
    """Build a response whose message carries ``(name, arguments_json)`` tool calls."""
    return _openai_message(
        {
            "role": "assistant",
            "content": content,
            "tool_calls": [
                {
                    "id": f"call_{i}",
                    "type": "function",
                    "function": {"name": name, "arguments": arguments},
                }
                for i, (name, arguments) in enumerate(calls)
            ],
        }
    )


def openai_function_call(name: str, arguments: str) -> dict[str, Any]:
    return _openai_message(
        {
            "role": "assistant",
            "content": None,
            "function_call": {"name": name, "arguments": arguments},
        }
    )


def openai_text(text: str) -> dict[str, Any]:
    return _openai_message({"role": "assistant", "content": text})


def openai_rate_limited() -> TransportError:
    body = {
        "error": {
            "message": "Rate limit reached for requests",
            "type": "requests",
            "code": "rate_limit_exceeded",
        }
    }
    return TransportError(
        "POST https://api.openai.com/v1/chat/completions returned HTTP 429",
        status_code=429,
        raw_body=json.dumps(body),
        error_body=body,
    )


def http_error(status_code: int, body: dict[str, Any] | None = None) -> TransportError:
    return TransportError(
        f"POST https://example.invalid returned HTTP {status_code}",
        status_code=status_code,
        raw_body=json.dumps(body) if body is not None else "",
        error_body=body,
    )
