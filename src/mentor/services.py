"""Wire stores, retriever, tool catalog and orchestrator around one connection."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from mentor.chat.catalog import build_default_registry
from mentor.chat.orchestrator import Orchestrator
from mentor.chat.tools import ToolRegistry
from mentor.chat.transcripts import TranscriptStore
from mentor.config import MentorConfig
from mentor.db.platform import PlatformData
from mentor.db.repository import Repository
from mentor.ingest.embedder import Embedder, EmbeddingConfig
from mentor.ingest.knowledge import KnowledgeStore
from mentor.rag.llm_client import ChatModel
from mentor.rag.retriever import Retriever, RetrieverConfig


@dataclass
class Services:
    repo: Repository
    platform: PlatformData
    knowledge: KnowledgeStore
    retriever: Retriever
    transcripts: TranscriptStore
    registry: ToolRegistry
    orchestrator: Orchestrator


def build_services(
    conn: sqlite3.Connection,
    cfg: MentorConfig,
    model: ChatModel | None = None,
    embedder: Embedder | None = None,
) -> Services:
    """Build the per-connection object graph.

    Args:
        conn: Open, initialised connection owned by the caller.
        cfg: Loaded configuration.
        model: Override the chat model (tests).
        embedder: Override the embedder (tests).
    """
    repo = Repository(conn)
    platform = PlatformData(conn)
    embedder = embedder or Embedder(
        EmbeddingConfig(model=cfg.embedding.model, dimensions=cfg.embedding.dimensions)
    )
    knowledge = KnowledgeStore(repo, embedder)
    retriever = Retriever(
        repo,
        embedder,
        RetrieverConfig(
            top_k=cfg.retrieval.top_k, min_similarity=cfg.retrieval.min_similarity
        ),
    )
    transcripts = TranscriptStore(repo, default_title=cfg.chat.default_title)
    registry = build_default_registry(knowledge, retriever, platform)
    model = model or ChatModel(
        cfg.generation.model,
        temperature=cfg.generation.temperature,
        max_tokens=cfg.generation.max_tokens,
    )
    orchestrator = Orchestrator(
        model,
        registry,
        transcripts,
        platform,
        max_steps=cfg.generation.max_steps,
    )
    return Services(
        repo=repo,
        platform=platform,
        knowledge=knowledge,
        retriever=retriever,
        transcripts=transcripts,
        registry=registry,
        orchestrator=orchestrator,
    )
