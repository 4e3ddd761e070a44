"""Knowledge store — resources and their embedded sentence chunks.

Ingestion pipeline: chunk → embed (one round trip) → write resource and all
embeddings in a single transaction. Embedding happens before the write, so a
provider failure leaves nothing behind.
"""

from __future__ import annotations

import logging

from mentor.db.models import Resource
from mentor.db.repository import Repository
from mentor.ingest.chunker import SentenceChunker
from mentor.ingest.embedder import Embedder

logger = logging.getLogger(__name__)


class KnowledgeStore:
    """Persist resources with one embedding row per chunk.

    Args:
        repo: Open Repository instance.
        embedder: Embedder used for ingestion.
        chunker: Chunker; defaults to SentenceChunker.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        chunker: SentenceChunker | None = None,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._chunker = chunker or SentenceChunker()

    def ingest(self, content: str) -> Resource:
        """Chunk, embed and store *content* as one resource.

        Raises:
            ValueError: If *content* is blank.
            EmbeddingServiceError: If the embedding call fails; nothing is stored.
        """
        chunks = self._chunker.chunk(content)
        if not chunks:
            raise ValueError("Cannot ingest empty content.")

        vectors = self._embedder.embed_many(chunks)
        resource = self._repo.add_resource_with_embeddings(
            content, list(zip(chunks, vectors))
        )
        logger.info("Ingested resource %s (%d chunks)", resource.id, len(chunks))
        return resource

    def create_resource(self, content: str) -> Resource:
        """Insert a bare resource row. Use ingest() for the full pipeline."""
        return self._repo.add_resource(content)

    def add_embeddings(self, resource_id: str, items: list[dict]) -> None:
        """Attach ``[{"content", "vector"}]`` rows to an existing resource."""
        self._repo.add_embeddings(
            resource_id, [(item["content"], item["vector"]) for item in items]
        )

    def all_resources(self) -> list[Resource]:
        return self._repo.list_resources()

    def get_resource(self, resource_id: str) -> Resource | None:
        return self._repo.get_resource(resource_id)

    def count_chunks(self, resource_id: str) -> int:
        return self._repo.count_embeddings(resource_id)

    def delete_resource(self, resource_id: str) -> bool:
        """Delete a resource and, by cascade, all of its chunks."""
        deleted = self._repo.delete_resource(resource_id)
        if deleted:
            logger.info("Deleted resource %s", resource_id)
        return deleted
