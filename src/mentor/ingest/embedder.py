"""Embedder — turns chunks and queries into fixed-length vectors via LiteLLM."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mentor.errors import EmbeddingServiceError
from mentor.rag import llm_client

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for embedding generation."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    num_retries: int = 3


class Embedder:
    """Embed text with a single provider round trip per call.

    ``embed_many`` is used at ingestion (all chunks of one resource in one
    request); ``embed_one`` is used for queries. Provider failures and
    malformed responses surface as EmbeddingServiceError; retry policy beyond
    LiteLLM's own ``num_retries`` is left to the caller.

    Args:
        config: Embedding configuration (model, dimensions, retries).
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def dimensions(self) -> int:
        return self._config.dimensions

    def embed_many(self, chunks: list[str]) -> list[list[float]]:
        """Embed *chunks* in order. An empty list makes no network call."""
        if not chunks:
            return []
        self._check_api_key()
        logger.debug("Embedding %d chunk(s) with %s", len(chunks), self._config.model)
        vectors = llm_client.embed(
            self._config.model, list(chunks), num_retries=self._config.num_retries
        )
        self._check_shape(vectors, expected=len(chunks))
        return vectors

    def embed_one(self, text: str) -> list[float]:
        """Embed a single query string.

        Literal ``\\n`` escape sequences are collapsed to spaces and the result
        is trimmed before embedding.
        """
        normalized = normalize_query(text)
        if not normalized:
            raise ValueError("Cannot embed an empty query.")
        self._check_api_key()
        vectors = llm_client.embed(
            self._config.model, [normalized], num_retries=self._config.num_retries
        )
        self._check_shape(vectors, expected=1)
        return vectors[0]

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _check_api_key(self) -> None:
        try:
            llm_client.validate_api_key(self._config.model)
        except EnvironmentError as exc:
            raise EmbeddingServiceError(str(exc)) from exc

    def _check_shape(self, vectors: list[list[float]], expected: int) -> None:
        if len(vectors) != expected:
            raise EmbeddingServiceError(
                f"Embedding provider returned {len(vectors)} vectors for {expected} inputs."
            )
        for vec in vectors:
            if len(vec) != self._config.dimensions:
                raise EmbeddingServiceError(
                    f"Embedding has {len(vec)} dimensions, expected "
                    f"{self._config.dimensions} for model '{self._config.model}'."
                )


def normalize_query(text: str) -> str:
    return text.replace("\\n", " ").strip()
