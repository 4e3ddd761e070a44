"""LiteLLM client wrapper: API key validation, embeddings, streamed chat.

All LLM + embedding calls route through this module. LiteLLM's built-in retry
is used (num_retries, exponential backoff). Provider failures are re-raised as
EmbeddingServiceError / ModelServiceError so callers never see raw provider
exceptions.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterator

import litellm

from mentor.errors import EmbeddingServiceError, ModelServiceError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


# ------------------------------------------------------------------
# Embeddings
# ------------------------------------------------------------------


def embed(model: str, texts: list[str], num_retries: int = 3) -> list[list[float]]:
    """Embed *texts* in a single litellm.embedding() round trip.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        texts: Inputs, embedded in order.
        num_retries: Number of retries on transient errors.

    Returns:
        One vector per input, in input order.

    Raises:
        EmbeddingServiceError: On provider failure after retries.
    """
    try:
        response = litellm.embedding(model=model, input=texts, num_retries=num_retries)
    except Exception as exc:
        raise EmbeddingServiceError(f"Embedding call to '{model}' failed: {exc}") from exc
    return [item["embedding"] for item in response.data]


# ------------------------------------------------------------------
# Streamed chat completion
# ------------------------------------------------------------------


@dataclass
class ToolCallFragment:
    """Partial tool call as streamed by the provider.

    The first fragment for an ``index`` carries ``id`` and ``name``; later
    fragments append to ``arguments``.
    """

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""


@dataclass
class StreamDelta:
    """One normalised chunk of a streamed model response."""

    content: str = ""
    tool_calls: list[ToolCallFragment] = field(default_factory=list)
    finish_reason: str | None = None


class ChatModel:
    """Streaming chat model with tool support, backed by litellm.completion().

    Args:
        model: LiteLLM model string (provider/model format).
        temperature: Sampling temperature (0 = deterministic).
        max_tokens: Maximum output tokens per call.
        num_retries: Retries on transient errors before the stream opens.
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 1024,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.num_retries = num_retries

    def stream(
        self, messages: list[dict], tools: list[dict] | None = None
    ) -> Iterator[StreamDelta]:
        """Yield StreamDelta objects as the provider streams them.

        Raises:
            ModelServiceError: If the call cannot be opened or the stream breaks.
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "num_retries": self.num_retries,
            "stream": True,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        logger.debug(
            "Opening stream: model=%s messages=%d tools=%d",
            self.model,
            len(messages),
            len(tools or []),
        )
        try:
            response = litellm.completion(**kwargs)
        except Exception as exc:
            raise ModelServiceError(f"Model call to '{self.model}' failed: {exc}") from exc

        try:
            for chunk in response:
                delta = _to_delta(chunk)
                if delta is not None:
                    yield delta
        except Exception as exc:
            raise ModelServiceError(f"Model stream from '{self.model}' broke: {exc}") from exc


def _to_delta(chunk: Any) -> StreamDelta | None:
    """Normalise a litellm streaming chunk; None for chunks with no choices."""
    choices = getattr(chunk, "choices", None)
    if not choices:
        return None
    choice = choices[0]
    delta = getattr(choice, "delta", None)
    fragments: list[ToolCallFragment] = []
    for tc in getattr(delta, "tool_calls", None) or []:
        fn = getattr(tc, "function", None)
        fragments.append(
            ToolCallFragment(
                index=getattr(tc, "index", 0) or 0,
                id=getattr(tc, "id", None),
                name=getattr(fn, "name", None) if fn is not None else None,
                arguments=(getattr(fn, "arguments", None) or "") if fn is not None else "",
            )
        )
    return StreamDelta(
        content=(getattr(delta, "content", None) or "") if delta is not None else "",
        tool_calls=fragments,
        finish_reason=getattr(choice, "finish_reason", None),
    )
