"""Conversation orchestrator — bounded tool-calling loop over a token stream.

Per request:
  init      resolve caller and chat (fail fast before anything starts), build
            system prompt
  generate  stream the model's reply, forwarding text as it arrives
  tools     run requested tools in request order, append tool messages, loop
  finish    persist the turn (step texts joined by blank lines), emit ``complete``
            and the new chat id if any

The loop makes at most ``max_steps`` model calls. Errors during generation end
the stream with an ``error`` status and a plain-text message; they are never
raised to the transport. Closing the returned generator (client disconnect)
abandons the model stream and skips persistence.
"""

from __future__ import annotations

import json
import logging
from contextlib import closing
from dataclasses import dataclass, field
from typing import Generator, Iterator, Protocol

from mentor.chat.events import (
    STATUS_COMPLETE,
    STATUS_ERROR,
    STATUS_GENERATING,
    STATUS_INITIALIZED,
    ChatCreated,
    ErrorText,
    StatusEvent,
    StreamEvent,
    TextDelta,
    ToolCallEvent,
    ToolResultEvent,
)
from mentor.chat.prompts import build_system_prompt
from mentor.chat.tools import ToolContext, ToolRegistry
from mentor.chat.transcripts import TranscriptStore
from mentor.db.models import User
from mentor.errors import (
    AuthError,
    ChatNotFoundError,
    EmbeddingServiceError,
    ModelServiceError,
    PersistenceError,
    ToolExecutionError,
)
from mentor.rag.llm_client import StreamDelta

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 3

_HISTORY_ROLES = frozenset(["user", "assistant"])


class ChatModelLike(Protocol):
    def stream(self, messages: list[dict], tools: list[dict] | None = None) -> Iterator[StreamDelta]: ...


class UserDirectory(Protocol):
    def get_user(self, user_id: str) -> User | None: ...


@dataclass
class ChatRequest:
    """One chat turn as received at the boundary.

    Attributes:
        history: Prior messages plus the new user message, oldest first.
        caller_id: Authenticated user id, or None.
        chat_id: Chat to append to; None starts a new chat.
    """

    history: list[dict]
    caller_id: str | None
    chat_id: str | None = None


@dataclass
class _PendingCall:
    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass
class _TurnState:
    messages: list[dict]
    step_texts: list[str] = field(default_factory=list)
    model_calls: int = 0


class Orchestrator:
    """Drive the generate → tool-intercept loop for one turn at a time.

    Holds no per-request state; a single instance serves concurrent requests
    as long as each request brings its own store connections.

    Args:
        model: Streaming chat model.
        registry: Tool catalog offered to the model.
        transcripts: Where finished turns are recorded.
        users: Resolves caller ids to users (for role).
        max_steps: Maximum model calls per turn.
    """

    def __init__(
        self,
        model: ChatModelLike,
        registry: ToolRegistry,
        transcripts: TranscriptStore,
        users: UserDirectory,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be >= 1")
        self._model = model
        self._registry = registry
        self._transcripts = transcripts
        self._users = users
        self._max_steps = max_steps

    def stream(self, request: ChatRequest) -> Iterator[StreamEvent]:
        """Validate *request* and return its event stream.

        Raises:
            AuthError: Caller missing or unknown. Raised here, before any
                model call or event.
            ChatNotFoundError: *chat_id* is set but not a chat the caller owns.
            ValueError: History holds no user message.
        """
        user = self._resolve_caller(request.caller_id)
        if request.chat_id is not None and not self._transcripts.owns_chat(
            request.chat_id, user.id
        ):
            raise ChatNotFoundError(f"Chat '{request.chat_id}' not found.")
        history = _clean_history(request.history)
        if not history or history[-1]["role"] != "user":
            raise ValueError("Chat history must end with a user message.")
        return self._run(request, user, history)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(
        self, request: ChatRequest, user: User, history: list[dict]
    ) -> Iterator[StreamEvent]:
        yield StatusEvent(STATUS_INITIALIZED)
        logger.debug("Turn for %s (%s): %.80s", user.id, user.role, history[-1]["content"])

        system = build_system_prompt(self._registry, user.role)
        state = _TurnState(messages=[{"role": "system", "content": system}, *history])
        context = ToolContext(caller_id=user.id, role=user.role)

        try:
            for step in range(1, self._max_steps + 1):
                calls = yield from self._generate(state, step)
                if not calls:
                    break
                if step == self._max_steps:
                    logger.warning(
                        "Step limit (%d) reached with %d pending tool call(s); finishing turn",
                        self._max_steps,
                        len(calls),
                    )
                    break
                yield from self._run_tools(calls, state, context)
        except Exception as exc:
            logger.exception("Chat turn failed for user %s", user.id)
            yield StatusEvent(STATUS_ERROR, message=str(exc))
            yield ErrorText(_error_message(exc))
            return

        assistant_text = "\n\n".join(t for t in state.step_texts if t)
        try:
            turn = self._transcripts.append_turn(
                request.chat_id, user.id, history[-1]["content"], assistant_text
            )
        except PersistenceError as exc:
            yield StatusEvent(
                STATUS_ERROR, message=f"Your conversation may not have been saved: {exc}"
            )
            return

        logger.info(
            "Turn complete for chat %s (%d model call(s))", turn.chat_id, state.model_calls
        )
        yield StatusEvent(STATUS_COMPLETE)
        if turn.created:
            yield ChatCreated(turn.chat_id)

    def _generate(
        self, state: _TurnState, step: int
    ) -> Generator[StreamEvent, None, list[_PendingCall]]:
        """Stream one model call; return the tool calls it requested."""
        pending: dict[int, _PendingCall] = {}
        step_text: list[str] = []

        state.model_calls += 1
        with closing(self._model.stream(state.messages, self._registry.schemas())) as deltas:
            for delta in deltas:
                if delta.content:
                    step_text.append(delta.content)
                    yield TextDelta(delta.content)
                for fragment in delta.tool_calls:
                    call = pending.setdefault(fragment.index, _PendingCall(index=fragment.index))
                    if fragment.id:
                        call.id = fragment.id
                    if fragment.name:
                        call.name = fragment.name
                    call.arguments += fragment.arguments
                yield StatusEvent(STATUS_GENERATING)

        state.step_texts.append("".join(step_text))
        calls = [pending[i] for i in sorted(pending)]
        for call in calls:
            if not call.id:
                call.id = f"call_{step}_{call.index}"

        if calls:
            state.messages.append(
                {
                    "role": "assistant",
                    "content": "".join(step_text) or None,
                    "tool_calls": [
                        {
                            "id": c.id,
                            "type": "function",
                            "function": {"name": c.name, "arguments": c.arguments or "{}"},
                        }
                        for c in calls
                    ],
                }
            )
        logger.debug("Step %d produced %d tool call(s)", step, len(calls))
        return calls

    def _run_tools(
        self, calls: list[_PendingCall], state: _TurnState, context: ToolContext
    ) -> Iterator[StreamEvent]:
        """Execute *calls* sequentially; results are appended in request order."""
        for call in calls:
            yield ToolCallEvent(call_id=call.id, name=call.name, arguments=call.arguments)
            try:
                result = self._registry.invoke(call.name, call.arguments, context)
                is_error = False
            except ToolExecutionError as exc:
                result = {"error": str(exc)}
                is_error = True
            yield ToolResultEvent(
                call_id=call.id, name=call.name, result=result, is_error=is_error
            )
            state.messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "name": call.name,
                    "content": json.dumps(result, default=str),
                }
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_caller(self, caller_id: str | None) -> User:
        if not caller_id:
            raise AuthError("Unauthorized")
        user = self._users.get_user(caller_id)
        if user is None:
            raise AuthError("Unauthorized")
        return user


def _clean_history(history: list[dict]) -> list[dict]:
    """Keep only user/assistant text messages from client-supplied history."""
    cleaned: list[dict] = []
    for message in history:
        role = message.get("role")
        content = message.get("content")
        if role in _HISTORY_ROLES and isinstance(content, str):
            cleaned.append({"role": role, "content": content})
    return cleaned


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ModelServiceError):
        return "The assistant is unavailable right now. Please try again in a moment."
    if isinstance(exc, EmbeddingServiceError):
        return "The knowledge base could not be searched right now. Please try again."
    return f"An error occurred while generating a response: {exc}"
