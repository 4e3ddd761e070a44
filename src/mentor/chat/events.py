"""Stream events emitted by the orchestrator and their wire encoding.

One iterator carries text and out-of-band events. ``encode_event`` renders
each event as one line of the data-stream protocol the chat client reads:

    0:<json string>   text delta
    2:[<json>]        status data
    3:<json string>   error text
    8:[<json>]        message annotation (new chat id)
    9:<json>          tool call
    a:<json>          tool result
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

STATUS_INITIALIZED = "initialized"
STATUS_GENERATING = "generating"
STATUS_COMPLETE = "complete"
STATUS_ERROR = "error"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class TextDelta:
    text: str


@dataclass
class StatusEvent:
    status: str
    timestamp: str = field(default_factory=utc_now)
    message: str | None = None


@dataclass
class ToolCallEvent:
    call_id: str
    name: str
    arguments: str


@dataclass
class ToolResultEvent:
    call_id: str
    name: str
    result: Any
    is_error: bool = False


@dataclass
class ChatCreated:
    chat_id: str


@dataclass
class ErrorText:
    message: str


StreamEvent = Union[TextDelta, StatusEvent, ToolCallEvent, ToolResultEvent, ChatCreated, ErrorText]


def encode_event(event: StreamEvent) -> str:
    """Render *event* as one newline-terminated data-stream line."""
    if isinstance(event, TextDelta):
        return f"0:{json.dumps(event.text)}\n"
    if isinstance(event, StatusEvent):
        payload: dict[str, Any] = {"status": event.status, "timestamp": event.timestamp}
        if event.message is not None:
            payload["message"] = event.message
        return f"2:{json.dumps([payload])}\n"
    if isinstance(event, ErrorText):
        return f"3:{json.dumps(event.message)}\n"
    if isinstance(event, ChatCreated):
        return f"8:{json.dumps([{'chatId': event.chat_id}])}\n"
    if isinstance(event, ToolCallEvent):
        try:
            args: Any = json.loads(event.arguments or "{}")
        except json.JSONDecodeError:
            args = event.arguments
        body = {"toolCallId": event.call_id, "toolName": event.name, "args": args}
        return f"9:{json.dumps(body)}\n"
    if isinstance(event, ToolResultEvent):
        body = {"toolCallId": event.call_id, "result": event.result}
        return f"a:{json.dumps(body, default=str)}\n"
    raise TypeError(f"Unknown stream event: {event!r}")
