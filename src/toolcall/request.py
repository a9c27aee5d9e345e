"""Invocation inputs: tool declarations, requests, and conversation state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import json
from typing import Any

from toolcall.errors import ConfigurationError
from toolcall.retry import DEFAULT_INITIAL_BACKOFF_S, DEFAULT_MAX_RETRIES, RetryPolicy

NUDGE_TEMPLATE = "Please continue with the function call for {tool_name}."


@dataclass(frozen=True)
class ToolDeclaration:
    """One callable the model is asked to invoke.

    ``input_schema`` is a JSON-schema-like object describing the arguments.
    """

    name: str
    description: str = ""
    input_schema: Mapping[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError(
                "Tool name must be a non-empty string",
                hint="Pass ToolDeclaration(name='suggest_item', ...).",
            )
        if not isinstance(self.input_schema, Mapping):
            raise ConfigurationError(
                f"input_schema for tool {self.name!r} must be a mapping",
                hint="Use a JSON schema object like {'type': 'object', 'properties': {...}}.",
            )
        if not isinstance(self.input_schema, dict):
            object.__setattr__(self, "input_schema", dict(self.input_schema))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolDeclaration:
        """Build from an Anthropic-style tool mapping.

        ``parameters`` is accepted as an alias for ``input_schema``.
        """
        schema = data.get("input_schema", data.get("parameters"))
        if schema is None:
            schema = {"type": "object", "properties": {}}
        return cls(
            name=data.get("name", ""),
            description=data.get("description", "") or "",
            input_schema=schema,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the declaration in Anthropic tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": dict(self.input_schema),
        }


@dataclass(frozen=True)
class InvocationRequest:
    """Immutable description of one structured AI call."""

    prompt: str
    tool: ToolDeclaration
    expected_tool_name: str | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_S
    #: Overall deadline for the whole invocation, backoff included.
    timeout_s: float | None = None
    #: Full backoff policy; when set it supersedes max_retries/initial_backoff_s.
    retry_policy: RetryPolicy | None = None

    def __post_init__(self) -> None:
        """Validate shapes early for clear errors."""
        if not isinstance(self.prompt, str):
            raise ConfigurationError("prompt must be a string")
        if isinstance(self.tool, Mapping):
            object.__setattr__(self, "tool", ToolDeclaration.from_dict(self.tool))
        if not self.expected_tool_name:
            object.__setattr__(self, "expected_tool_name", self.tool.name)
        if self.retry_policy is not None:
            if not isinstance(self.retry_policy, RetryPolicy):
                raise ConfigurationError(
                    "retry_policy must be a RetryPolicy",
                    hint="Pass RetryPolicy(max_retries=..., initial_backoff_s=...).",
                )
            object.__setattr__(self, "max_retries", self.retry_policy.max_retries)
            object.__setattr__(
                self, "initial_backoff_s", self.retry_policy.initial_backoff_s
            )
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ConfigurationError("max_retries must be an integer")
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must be ≥ 0, got {self.max_retries}",
                hint="Use 0 to disable retries.",
            )
        if self.initial_backoff_s <= 0:
            raise ConfigurationError(
                f"initial_backoff_s must be > 0, got {self.initial_backoff_s}"
            )
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0 when set, got {self.timeout_s}"
            )
        if self.retry_policy is None:
            object.__setattr__(
                self,
                "retry_policy",
                RetryPolicy(
                    max_retries=self.max_retries,
                    initial_backoff_s=self.initial_backoff_s,
                ),
            )

    @property
    def tool_name(self) -> str:
        return self.expected_tool_name or self.tool.name


class ConversationState:
    """Invocation-local message history.

    Seeded with the user prompt and extended with an assistant echo plus a
    user nudge whenever the model answers without calling the tool.
    """

    def __init__(self, prompt: str) -> None:
        self._messages: list[dict[str, str]] = [{"role": "user", "content": prompt}]

    @property
    def messages(self) -> list[dict[str, str]]:
        """A copy of the messages, safe to embed in a request body."""
        return [dict(m) for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def add_nudge(
        self, assistant_text: str, tool_name: str, *, raw: Mapping[str, Any] | None = None
    ) -> None:
        # Providers reject empty assistant turns; echo the raw body instead.
        if not assistant_text.strip():
            assistant_text = json.dumps(raw if raw is not None else {})
        self._messages.append({"role": "assistant", "content": assistant_text})
        self._messages.append(
            {"role": "user", "content": NUDGE_TEMPLATE.format(tool_name=tool_name)}
        )
