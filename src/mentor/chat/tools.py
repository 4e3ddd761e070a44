"""Tool registry — named, schema-described functions the model may invoke.

A Tool never calls other tools; chaining is the orchestrator's job. Each tool
declares its arguments as a pydantic model; the model's JSON string is
validated against it, and the ambient caller identity is passed alongside in
a ToolContext rather than as a model-visible argument.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator

from pydantic import BaseModel, ConfigDict, ValidationError

from mentor.errors import ToolArgumentError, ToolExecutionError

logger = logging.getLogger(__name__)


class ToolArgs(BaseModel):
    """Base for tool argument models: no coercion, no undeclared keys."""

    model_config = ConfigDict(extra="forbid", strict=True)


class NoArgs(ToolArgs):
    pass


@dataclass
class ToolContext:
    """Ambient identity of the caller on whose behalf a tool runs."""

    caller_id: str
    role: str = "student"


@dataclass
class Tool:
    """A model-invocable capability.

    Attributes:
        name: Identifier the model uses in tool calls.
        description: Tells the model when the tool is useful.
        execute: ``(args, context) -> JSON-serialisable result``.
        args_model: Declared arguments; field descriptions are shown to the model.
        trigger: Phrase completing "When the user asks about ..." in the
            system prompt; empty to omit the rule.
    """

    name: str
    description: str
    execute: Callable[[dict, ToolContext], Any]
    args_model: type[ToolArgs] = NoArgs
    trigger: str = ""

    def schema(self) -> dict:
        """OpenAI function-tool schema for this tool."""
        parameters = self.args_model.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


class ToolRegistry:
    """Explicit catalog of tools, passed into the orchestrator."""

    def __init__(self, tools: Iterable[Tool]) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name '{tool.name}'")
            self._tools[tool.name] = tool

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def schemas(self) -> list[dict]:
        return [tool.schema() for tool in self._tools.values()]

    def invoke(self, name: str, raw_arguments: str | dict | None, context: ToolContext) -> Any:
        """Validate arguments and run the named tool.

        Raises:
            ToolArgumentError: Unknown tool or arguments not matching the schema.
            ToolExecutionError: The tool's execute function raised.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolArgumentError(name, f"Unknown tool '{name}'.")
        args = self.parse_arguments(tool, raw_arguments)

        logger.info("Calling tool %s for user %s", name, context.caller_id)
        try:
            result = tool.execute(args, context)
        except ToolExecutionError:
            raise
        except Exception as exc:
            logger.warning("Tool %s failed: %s", name, exc)
            raise ToolExecutionError(name, f"{type(exc).__name__}: {exc}") from exc
        return result

    @staticmethod
    def parse_arguments(tool: Tool, raw: str | dict | None) -> dict:
        """Decode and validate the model's arguments for *tool*.

        Optional arguments the model left out or sent as null are dropped.
        """
        try:
            if raw is None or raw == "":
                parsed = tool.args_model.model_validate({})
            elif isinstance(raw, dict):
                parsed = tool.args_model.model_validate(raw)
            else:
                parsed = tool.args_model.model_validate_json(raw)
        except ValidationError as exc:
            raise ToolArgumentError(
                tool.name, f"Invalid arguments for '{tool.name}': {_describe(exc)}"
            ) from exc
        return parsed.model_dump(exclude_none=True)


def _describe(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        if err["type"] == "missing":
            problems.append(f"missing required argument '{loc}'")
        elif err["type"] == "extra_forbidden":
            problems.append(f"unexpected argument '{loc}'")
        elif err["type"] == "json_invalid":
            problems.append("not valid JSON")
        elif loc:
            problems.append(f"'{loc}': {err['msg']}")
        else:
            problems.append(err["msg"])
    return "; ".join(problems)
