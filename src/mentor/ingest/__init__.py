"""Mentor ingest pipeline — sentence chunker, embedder, knowledge store."""

from mentor.ingest.chunker import SentenceChunker
from mentor.ingest.embedder import Embedder, EmbeddingConfig
from mentor.ingest.knowledge import KnowledgeStore

__all__ = [
    "Embedder",
    "EmbeddingConfig",
    "KnowledgeStore",
    "SentenceChunker",
]
