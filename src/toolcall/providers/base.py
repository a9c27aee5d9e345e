"""Provider protocol: request encoding and tool-call parsing per wire format."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from toolcall.config import ProviderConfig
    from toolcall.errors import TransportError
    from toolcall.request import ToolDeclaration

MissReason = Literal["not_called", "name_mismatch", "invalid_arguments"]


@dataclass(frozen=True)
class HttpRequest:
    """A fully-encoded provider request, ready for the transport."""

    url: str
    headers: dict[str, str]
    payload: dict[str, Any]


@dataclass(frozen=True)
class ToolFound:
    """The expected tool was invoked with a decodable argument mapping."""

    arguments: dict[str, Any]


@dataclass(frozen=True)
class ToolMissing:
    """The provider answered without a usable invocation of the tool."""

    reason: MissReason = "not_called"
    detail: str = ""
    seen_tools: tuple[str, ...] = field(default_factory=tuple)


ParseOutcome = ToolFound | ToolMissing


@runtime_checkable
class ProviderAdapter(Protocol):
    """Per-provider request encoder and response parser.

    Raises ``MalformedResponseError`` from ``parse_tool_call`` when the
    response envelope itself is unusable.
    """

    name: str

    def build_request(
        self,
        config: ProviderConfig,
        messages: list[dict[str, str]],
        tool: ToolDeclaration,
    ) -> HttpRequest:
        """Encode one attempt's request."""
        ...

    def parse_tool_call(
        self, raw: dict[str, Any], expected_tool_name: str
    ) -> ParseOutcome:
        """Extract the expected tool's arguments from *raw*."""
        ...

    def assistant_text(self, raw: dict[str, Any]) -> str:
        """Return whatever free text the model produced."""
        ...

    def is_overload(self, error: TransportError) -> bool:
        """Whether *error* signals transient provider capacity exhaustion."""
        ...
