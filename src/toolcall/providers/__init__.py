"""Provider adapters."""

from __future__ import annotations

from toolcall.config import ProviderKind

from .anthropic import AnthropicAdapter
from .base import HttpRequest, ParseOutcome, ProviderAdapter, ToolFound, ToolMissing
from .openai import OpenAIAdapter

_ADAPTERS: dict[ProviderKind, type[AnthropicAdapter] | type[OpenAIAdapter]] = {
    ProviderKind.ANTHROPIC: AnthropicAdapter,
    ProviderKind.OPENAI: OpenAIAdapter,
}


def get_adapter(kind: ProviderKind | str) -> ProviderAdapter:
    """Return a fresh adapter for *kind*."""
    return _ADAPTERS[ProviderKind(kind)]()


__all__ = [
    "AnthropicAdapter",
    "HttpRequest",
    "OpenAIAdapter",
    "ParseOutcome",
    "ProviderAdapter",
    "ToolFound",
    "ToolMissing",
    "get_adapter",
]
