"""Dense retriever: cosine similarity over every stored embedding.

similarity(a, b) = 1 - cosine_distance(a, b)

Results above ``min_similarity`` are returned best-first, capped at ``k``;
equal scores keep insertion order. The scan is exhaustive; an ANN index can
replace Repository.search_similar() as long as that contract holds.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from mentor.db.repository import Repository
from mentor.ingest.embedder import Embedder

logger = logging.getLogger(__name__)


@dataclass
class RetrieverConfig:
    """Configuration for knowledge lookup.

    Attributes:
        top_k: Maximum number of chunks to return.
        min_similarity: Exclusive lower bound on cosine similarity.
    """

    top_k: int = 4
    min_similarity: float = 0.5


@dataclass
class RelevantChunk:
    """A retrieved chunk and its cosine similarity to the query."""

    content: str
    similarity: float

    def to_dict(self) -> dict:
        return asdict(self)


class Retriever:
    """Rank stored chunks against a query embedding.

    Args:
        repo: Open Repository instance.
        embedder: Embedder used for the query (must match the ingest model).
        config: Default ``k`` and threshold.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        config: RetrieverConfig | None = None,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._config = config or RetrieverConfig()

    def find_relevant(
        self,
        query: str,
        k: int | None = None,
        min_similarity: float | None = None,
    ) -> list[RelevantChunk]:
        """Return at most *k* chunks with similarity strictly above the threshold.

        Raises:
            ValueError: If *k* < 1 or *query* is blank.
            EmbeddingServiceError: If the query cannot be embedded.
        """
        k = self._config.top_k if k is None else k
        threshold = self._config.min_similarity if min_similarity is None else min_similarity
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        vector = self._embedder.embed_one(query)
        rows = self._repo.search_similar(vector, limit=k, min_similarity=threshold)
        logger.debug("Knowledge lookup matched %d chunk(s) (k=%d, min=%.2f)", len(rows), k, threshold)
        return [RelevantChunk(content=content, similarity=sim) for content, sim in rows]
