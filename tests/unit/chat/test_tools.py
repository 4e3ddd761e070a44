"""Tests for Tool, ToolArgs and ToolRegistry."""

from __future__ import annotations

import pytest
from pydantic import Field

from mentor.chat.tools import NoArgs, Tool, ToolArgs, ToolContext, ToolRegistry
from mentor.errors import ToolArgumentError, ToolExecutionError

CTX = ToolContext(caller_id="stu-1")


class EchoArgs(ToolArgs):
    text: str = Field(description="what to echo")
    times: int | None = Field(default=None, description="repeat count")


def _echo_tool(**kwargs) -> Tool:
    return Tool(
        name=kwargs.get("name", "echo"),
        description="Echo arguments back.",
        execute=kwargs.get("execute", lambda args, ctx: {"args": args, "caller": ctx.caller_id}),
        args_model=kwargs.get("args_model", EchoArgs),
    )


# ------------------------------------------------------------------
# Schema
# ------------------------------------------------------------------


def test_schema_openai_format():
    schema = _echo_tool().schema()
    assert schema["type"] == "function"
    fn = schema["function"]
    assert fn["name"] == "echo"
    params = fn["parameters"]
    assert params["type"] == "object"
    assert params["properties"]["text"]["type"] == "string"
    assert params["properties"]["text"]["description"] == "what to echo"
    assert params["required"] == ["text"]
    assert params["additionalProperties"] is False
    assert "title" not in params


def test_schema_no_params():
    tool = Tool(name="ping", description="Ping.", execute=lambda a, c: "pong")
    assert tool.args_model is NoArgs
    params = tool.schema()["function"]["parameters"]
    assert params["properties"] == {}
    assert "required" not in params


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


def test_registry_rejects_duplicates():
    with pytest.raises(ValueError, match="Duplicate"):
        ToolRegistry([_echo_tool(), _echo_tool()])


def test_registry_lookup():
    reg = ToolRegistry([_echo_tool(), _echo_tool(name="other")])
    assert len(reg) == 2
    assert "echo" in reg
    assert "missing" not in reg
    assert reg.names == ["echo", "other"]
    assert reg.get("missing") is None
    assert [s["function"]["name"] for s in reg.schemas()] == ["echo", "other"]


def test_invoke_passes_context():
    reg = ToolRegistry([_echo_tool()])
    result = reg.invoke("echo", '{"text": "hi"}', CTX)
    assert result == {"args": {"text": "hi"}, "caller": "stu-1"}


def test_invoke_unknown_tool():
    with pytest.raises(ToolArgumentError, match="Unknown tool"):
        ToolRegistry([]).invoke("nope", "{}", CTX)


def test_invoke_bad_arguments_never_runs_tool():
    calls = []
    reg = ToolRegistry([_echo_tool(execute=lambda a, c: calls.append(a))])
    with pytest.raises(ToolArgumentError):
        reg.invoke("echo", '{"times": 2}', CTX)
    assert calls == []


def test_invoke_wraps_tool_exceptions():
    def boom(args, ctx):
        raise KeyError("course")

    reg = ToolRegistry([_echo_tool(execute=boom)])
    with pytest.raises(ToolExecutionError) as exc_info:
        reg.invoke("echo", '{"text": "x"}', CTX)
    assert exc_info.value.tool_name == "echo"
    assert "KeyError" in str(exc_info.value)


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def test_parse_invalid_json():
    with pytest.raises(ToolArgumentError, match="not valid JSON"):
        ToolRegistry.parse_arguments(_echo_tool(), '{"text": ')


def test_parse_non_object():
    with pytest.raises(ToolArgumentError, match="Invalid arguments for 'echo'"):
        ToolRegistry.parse_arguments(_echo_tool(), '["a"]')


def test_parse_missing_required():
    with pytest.raises(ToolArgumentError, match="missing required argument 'text'"):
        ToolRegistry.parse_arguments(_echo_tool(), "{}")


def test_parse_unexpected_key():
    with pytest.raises(ToolArgumentError, match="unexpected argument 'extra'"):
        ToolRegistry.parse_arguments(_echo_tool(), '{"text": "a", "extra": 1}')


@pytest.mark.parametrize("times", ['"3"', "2.5", "true"])
def test_parse_wrong_type_not_coerced(times):
    with pytest.raises(ToolArgumentError, match="'times'"):
        ToolRegistry.parse_arguments(_echo_tool(), f'{{"text": "a", "times": {times}}}')


def test_parse_keeps_valid_optional():
    assert ToolRegistry.parse_arguments(_echo_tool(), '{"text": "a", "times": 3}') == {
        "text": "a",
        "times": 3,
    }


def test_parse_drops_null_optional():
    assert ToolRegistry.parse_arguments(_echo_tool(), '{"text": "a", "times": null}') == {"text": "a"}


def test_parse_empty_for_no_param_tool():
    tool = Tool(name="ping", description="Ping.", execute=lambda a, c: "pong")
    assert ToolRegistry.parse_arguments(tool, "") == {}
    assert ToolRegistry.parse_arguments(tool, None) == {}
    with pytest.raises(ToolArgumentError, match="unexpected argument 'x'"):
        ToolRegistry.parse_arguments(tool, '{"x": 1}')


def test_parse_dict_not_mutated():
    raw = {"text": "a", "times": None}
    assert ToolRegistry.parse_arguments(_echo_tool(), raw) == {"text": "a"}
    assert raw == {"text": "a", "times": None}
