"""Exception taxonomy for the assistant core.

Boundary errors (AuthError, ChatNotFoundError) fail fast before any side
effect. Mid-turn errors are caught by the orchestrator and turned into stream
events.
"""

from __future__ import annotations


class MentorError(Exception):
    """Base class for all assistant-core errors."""


class AuthError(MentorError):
    """No resolvable caller identity."""


class ChatNotFoundError(MentorError):
    """The requested chat does not exist or belongs to another user."""


class EmbeddingServiceError(MentorError):
    """The embedding provider call failed or returned an unusable response."""


class ModelServiceError(MentorError):
    """The language-model call failed or was rate-limited."""


class PersistenceError(MentorError):
    """A transcript write failed or targeted a chat the caller does not own."""


class ToolExecutionError(MentorError):
    """A tool's execute function raised.

    Attributes:
        tool_name: Name of the tool that failed.
    """

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolArgumentError(ToolExecutionError):
    """Model-supplied arguments did not match the tool's parameter schema."""
