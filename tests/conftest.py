"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, shared fixtures,
and automatic API test skipping.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
import logging
import os
from typing import Any

import pytest

import toolcall.config as toolcall_config
from toolcall.config import ProviderConfig, ProviderKind
from toolcall.request import ToolDeclaration

# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def suggest_tool() -> ToolDeclaration:
    return ToolDeclaration(
        name="suggest_item",
        description="Suggest one item with an id and a display name.",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "name": {"type": "string"},
            },
            "required": ["id", "name"],
        },
    )


@pytest.fixture
def anthropic_config() -> ProviderConfig:
    return ProviderConfig(provider=ProviderKind.ANTHROPIC, api_key="test-anthropic-key")


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(provider=ProviderKind.OPENAI, api_key="test-openai-key")


@pytest.fixture
def recorded_sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace ``asyncio.sleep`` with a recorder that returns immediately."""
    delays: list[float] = []

    async def _fake_sleep(delay: float, result: Any = None) -> Any:
        delays.append(delay)
        return result

    monkeypatch.setattr(asyncio, "sleep", _fake_sleep)
    return delays


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests."""
    monkeypatch.setattr(toolcall_config, "_DOTENV_LOADED", True)
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch, tmp_path):
    """Ensure a clean provider environment for each test.

    Clears TOOLCALL_*, ANTHROPIC_* and OPENAI_* env vars and points the
    config file at an empty temp location.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("TOOLCALL_", "ANTHROPIC_", "OPENAI_")):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TOOLCALL_CONFIG_FILE", str(tmp_path / "missing.toml"))


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# API Test Configuration
# =============================================================================

# Cheapest models that support tool calling.
_ANTHROPIC_TEST_MODEL = "claude-3-haiku-20240307"
_OPENAI_TEST_MODEL = "gpt-4o-mini"


@pytest.fixture
def anthropic_api_key():
    """Return ANTHROPIC_API_KEY or skip the test if unavailable."""
    key = os.getenv("ANTHROPIC_API_KEY")
    if not key:
        pytest.skip("ANTHROPIC_API_KEY not set")
    return key


@pytest.fixture
def anthropic_test_model():
    return _ANTHROPIC_TEST_MODEL


@pytest.fixture
def openai_api_key():
    """Return OPENAI_API_KEY or skip the test if unavailable."""
    key = os.getenv("OPENAI_API_KEY")
    if not key:
        pytest.skip("OPENAI_API_KEY not set")
    return key


@pytest.fixture
def openai_test_model():
    return _OPENAI_TEST_MODEL
