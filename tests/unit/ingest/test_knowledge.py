"""Tests for KnowledgeStore ingestion."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from mentor.db.repository import Repository
from mentor.errors import EmbeddingServiceError
from mentor.ingest.knowledge import KnowledgeStore


def _fake_embedder(vectors=None, error=None):
    emb = MagicMock()
    if error is not None:
        emb.embed_many.side_effect = error
    else:
        emb.embed_many.side_effect = lambda chunks: vectors or [
            [float(i), 1.0] for i, _ in enumerate(chunks)
        ]
    return emb


def test_ingest_stores_resource_and_chunks(tmp_db):
    repo = Repository(tmp_db)
    store = KnowledgeStore(repo, _fake_embedder())

    resource = store.ingest("Grades range from 0 to 100. Late work is penalized.")

    assert resource.content == "Grades range from 0 to 100. Late work is penalized."
    assert store.count_chunks(resource.id) == 2
    assert [e.content for e in repo.list_embeddings(resource.id)] == [
        "Grades range from 0 to 100.",
        "Late work is penalized.",
    ]


def test_ingest_embeds_all_chunks_in_one_call(tmp_db):
    emb = _fake_embedder()
    KnowledgeStore(Repository(tmp_db), emb).ingest("A. B. C.")
    emb.embed_many.assert_called_once_with(["A.", "B.", "C."])


def test_ingest_empty_raises(tmp_db):
    emb = _fake_embedder()
    store = KnowledgeStore(Repository(tmp_db), emb)
    with pytest.raises(ValueError):
        store.ingest("   ")
    emb.embed_many.assert_not_called()


def test_ingest_embedding_failure_stores_nothing(tmp_db):
    store = KnowledgeStore(
        Repository(tmp_db), _fake_embedder(error=EmbeddingServiceError("down"))
    )
    with pytest.raises(EmbeddingServiceError):
        store.ingest("A. B.")
    assert store.all_resources() == []


def test_create_resource_and_add_embeddings(tmp_db):
    store = KnowledgeStore(Repository(tmp_db), _fake_embedder())
    r = store.create_resource("Manual.")
    store.add_embeddings(r.id, [{"content": "Manual.", "vector": [1.0, 0.0]}])
    assert store.count_chunks(r.id) == 1
    assert store.get_resource(r.id) == r


def test_delete_resource(tmp_db):
    store = KnowledgeStore(Repository(tmp_db), _fake_embedder())
    r = store.ingest("A. B.")
    assert store.delete_resource(r.id) is True
    assert store.count_chunks(r.id) == 0
    assert store.delete_resource(r.id) is False
