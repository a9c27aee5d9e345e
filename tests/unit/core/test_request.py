from __future__ import annotations

import json
from types import MappingProxyType

import pytest

from toolcall.errors import ConfigurationError
from toolcall.request import ConversationState, InvocationRequest, ToolDeclaration
from toolcall.retry import RetryPolicy

pytestmark = pytest.mark.unit


def test_tool_from_anthropic_style_mapping() -> None:
    tool = ToolDeclaration.from_dict(
        {
            "name": "create_paragraph",
            "description": "Create a paragraph type.",
            "input_schema": {"type": "object", "properties": {"id": {"type": "string"}}},
        }
    )

    assert tool.name == "create_paragraph"
    assert tool.to_dict() == {
        "name": "create_paragraph",
        "description": "Create a paragraph type.",
        "input_schema": {"type": "object", "properties": {"id": {"type": "string"}}},
    }


def test_tool_accepts_parameters_alias_and_missing_schema() -> None:
    aliased = ToolDeclaration.from_dict({"name": "a", "parameters": {"type": "object"}})
    bare = ToolDeclaration.from_dict({"name": "b"})

    assert aliased.input_schema == {"type": "object"}
    assert bare.input_schema == {"type": "object", "properties": {}}
    assert bare.description == ""


def test_tool_copies_read_only_mapping_schema() -> None:
    schema = MappingProxyType({"type": "object", "properties": {"id": {"type": "string"}}})

    direct = ToolDeclaration(name="a", input_schema=schema)
    parsed = ToolDeclaration.from_dict({"name": "b", "input_schema": schema})

    for tool in (direct, parsed):
        assert type(tool.input_schema) is dict
        assert tool.input_schema == dict(schema)
        assert tool.to_dict()["input_schema"] == dict(schema)


@pytest.mark.parametrize(
    "data",
    [{"name": ""}, {"name": "   "}, {}, {"name": "x", "input_schema": ["not", "a", "map"]}],
)
def test_tool_rejects_bad_declarations(data) -> None:
    with pytest.raises(ConfigurationError):
        ToolDeclaration.from_dict(data)


def test_request_defaults(suggest_tool) -> None:
    request = InvocationRequest(prompt="p", tool=suggest_tool)

    assert request.expected_tool_name == "suggest_item"
    assert request.tool_name == "suggest_item"
    assert request.max_retries == 3
    assert request.initial_backoff_s == 1.0
    assert request.timeout_s is None
    assert request.retry_policy == RetryPolicy(max_retries=3, initial_backoff_s=1.0)


def test_request_retry_policy_wins_over_scalars(suggest_tool) -> None:
    policy = RetryPolicy(max_retries=1, initial_backoff_s=0.25, jitter=True)
    request = InvocationRequest(
        prompt="p", tool=suggest_tool, max_retries=7, initial_backoff_s=5.0, retry_policy=policy
    )

    assert request.retry_policy is policy
    assert request.max_retries == 1
    assert request.initial_backoff_s == 0.25


def test_request_rejects_non_policy_retry_policy(suggest_tool) -> None:
    with pytest.raises(ConfigurationError, match="RetryPolicy"):
        InvocationRequest(prompt="p", tool=suggest_tool, retry_policy={"max_retries": 1})


def test_request_accepts_tool_mapping() -> None:
    request = InvocationRequest(prompt="p", tool={"name": "t", "description": "d"})

    assert isinstance(request.tool, ToolDeclaration)
    assert request.tool_name == "t"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"max_retries": 1.5},
        {"max_retries": True},
        {"initial_backoff_s": 0},
        {"timeout_s": 0},
        {"prompt": None},
    ],
)
def test_request_validation(suggest_tool, kwargs) -> None:
    base = {"prompt": "p", "tool": suggest_tool}
    with pytest.raises(ConfigurationError):
        InvocationRequest(**{**base, **kwargs})


def test_conversation_nudge_sequence() -> None:
    conversation = ConversationState("Build a hero section")
    conversation.add_nudge("I think a hero needs a title.", "create_paragraph")

    assert len(conversation) == 3
    assert conversation.messages == [
        {"role": "user", "content": "Build a hero section"},
        {"role": "assistant", "content": "I think a hero needs a title."},
        {
            "role": "user",
            "content": "Please continue with the function call for create_paragraph.",
        },
    ]


def test_conversation_empty_echo_uses_raw_body() -> None:
    raw = {"content": [], "stop_reason": "end_turn"}
    conversation = ConversationState("p")
    conversation.add_nudge("", "t", raw=raw)

    assert json.loads(conversation.messages[1]["content"]) == raw


def test_conversation_messages_are_copies() -> None:
    conversation = ConversationState("p")
    snapshot = conversation.messages
    snapshot[0]["content"] = "mutated"
    snapshot.append({"role": "user", "content": "extra"})

    assert conversation.messages == [{"role": "user", "content": "p"}]
