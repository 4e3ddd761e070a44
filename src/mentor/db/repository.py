"""Repository pattern for knowledge and transcript persistence.

Single interface for: resources, embeddings, similarity search, chats and
chat messages. Every public write runs in its own transaction (``with conn:``)
so composite writes are all-or-nothing.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Iterable

from mentor.db.models import Chat, ChatMessage, Embedding, Resource

_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def new_id() -> str:
    """Return a fresh UUID4 string used as a primary key."""
    return str(uuid.uuid4())


class Repository:
    """Data access layer for knowledge and transcript entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see mentor.db.schema.initialize).
        """
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def add_resource(self, content: str) -> Resource:
        """Insert a new resource and return it with its generated id."""
        resource_id = new_id()
        with self._conn:
            self._insert_resource(resource_id, content)
        return self.get_resource(resource_id)  # type: ignore[return-value]

    def add_resource_with_embeddings(
        self, content: str, items: list[tuple[str, list[float]]]
    ) -> Resource:
        """Insert a resource and all of its embeddings in one transaction.

        Args:
            content: Full resource text.
            items: ``(chunk_text, vector)`` pairs, one per chunk.

        Returns:
            The persisted Resource.
        """
        resource_id = new_id()
        with self._conn:
            self._insert_resource(resource_id, content)
            self._insert_embeddings(resource_id, items)
        return self.get_resource(resource_id)  # type: ignore[return-value]

    def get_resource(self, resource_id: str) -> Resource | None:
        row = self._conn.execute(
            "SELECT id, content, created_at FROM resources WHERE id = ?",
            (resource_id,),
        ).fetchone()
        return _row_to_resource(row) if row else None

    def list_resources(self) -> list[Resource]:
        """Return all resources ordered by creation time (oldest first)."""
        rows = self._conn.execute(
            "SELECT id, content, created_at FROM resources ORDER BY created_at, rowid"
        ).fetchall()
        return [_row_to_resource(r) for r in rows]

    def delete_resource(self, resource_id: str) -> bool:
        """Delete a resource; its embeddings go with it (ON DELETE CASCADE).

        Returns:
            True if a row was deleted.
        """
        with self._conn:
            cur = self._conn.execute("DELETE FROM resources WHERE id = ?", (resource_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def add_embeddings(
        self, resource_id: str, items: list[tuple[str, list[float]]]
    ) -> None:
        """Insert ``(chunk_text, vector)`` rows for *resource_id* atomically."""
        with self._conn:
            self._insert_embeddings(resource_id, items)

    def list_embeddings(self, resource_id: str) -> list[Embedding]:
        rows = self._conn.execute(
            """
            SELECT id, resource_id, content, embedding, created_at
            FROM embeddings WHERE resource_id = ? ORDER BY rowid
            """,
            (resource_id,),
        ).fetchall()
        return [_row_to_embedding(r) for r in rows]

    def count_embeddings(self, resource_id: str | None = None) -> int:
        if resource_id is None:
            return self._conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]
        return self._conn.execute(
            "SELECT COUNT(*) FROM embeddings WHERE resource_id = ?", (resource_id,)
        ).fetchone()[0]

    def search_similar(
        self, vector: list[float], limit: int, min_similarity: float
    ) -> list[tuple[str, float]]:
        """Exhaustive cosine-similarity scan over every stored embedding.

        similarity = 1 - vec_distance_cosine(stored, query). Rows at or below
        *min_similarity* are dropped; equal scores keep insertion order.

        Returns:
            ``(content, similarity)`` pairs, best first, at most *limit* long.
        """
        rows = self._conn.execute(
            """
            SELECT content, similarity FROM (
                SELECT rowid AS rid,
                       content,
                       1.0 - vec_distance_cosine(embedding, ?) AS similarity
                FROM embeddings
            )
            WHERE similarity > ?
            ORDER BY similarity DESC, rid ASC
            LIMIT ?
            """,
            (json.dumps(vector), min_similarity, limit),
        ).fetchall()
        return [(r["content"], float(r["similarity"])) for r in rows]

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    def create_chat_with_messages(
        self, user_id: str, title: str, messages: Iterable[tuple[str, str]]
    ) -> Chat:
        """Create a chat and insert its first messages in one transaction."""
        chat_id = new_id()
        with self._conn:
            self._conn.execute(
                "INSERT INTO chats (id, user_id, title) VALUES (?, ?, ?)",
                (chat_id, user_id, title),
            )
            self._insert_messages(chat_id, messages)
        return self.get_chat(chat_id)  # type: ignore[return-value]

    def append_messages(self, chat_id: str, messages: Iterable[tuple[str, str]]) -> None:
        """Insert messages into an existing chat and bump its updated_at."""
        with self._conn:
            self._insert_messages(chat_id, messages)
            self._conn.execute(
                f"UPDATE chats SET updated_at = {_NOW_SQL} WHERE id = ?", (chat_id,)
            )

    def get_chat(self, chat_id: str) -> Chat | None:
        row = self._conn.execute(
            "SELECT id, user_id, title, created_at, updated_at FROM chats WHERE id = ?",
            (chat_id,),
        ).fetchone()
        return _row_to_chat(row) if row else None

    def list_chats(self, user_id: str) -> list[Chat]:
        """Return the user's chats, most recently updated first."""
        rows = self._conn.execute(
            """
            SELECT id, user_id, title, created_at, updated_at FROM chats
            WHERE user_id = ? ORDER BY updated_at DESC, rowid DESC
            """,
            (user_id,),
        ).fetchall()
        return [_row_to_chat(r) for r in rows]

    def rename_chat(self, chat_id: str, title: str) -> bool:
        with self._conn:
            cur = self._conn.execute(
                f"UPDATE chats SET title = ?, updated_at = {_NOW_SQL} WHERE id = ?",
                (title, chat_id),
            )
        return cur.rowcount > 0

    def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat; its messages go with it (ON DELETE CASCADE)."""
        with self._conn:
            cur = self._conn.execute("DELETE FROM chats WHERE id = ?", (chat_id,))
        return cur.rowcount > 0

    def list_messages(self, chat_id: str) -> list[ChatMessage]:
        """Return a chat's messages in creation order."""
        rows = self._conn.execute(
            """
            SELECT id, chat_id, role, content, created_at FROM chat_messages
            WHERE chat_id = ? ORDER BY created_at, rowid
            """,
            (chat_id,),
        ).fetchall()
        return [_row_to_message(r) for r in rows]

    def count_chats(self, user_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM chats WHERE user_id = ?", (user_id,)
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Internal inserts (caller owns the transaction)
    # ------------------------------------------------------------------

    def _insert_resource(self, resource_id: str, content: str) -> None:
        self._conn.execute(
            "INSERT INTO resources (id, content) VALUES (?, ?)", (resource_id, content)
        )

    def _insert_embeddings(
        self, resource_id: str, items: list[tuple[str, list[float]]]
    ) -> None:
        self._conn.executemany(
            "INSERT INTO embeddings (id, resource_id, content, embedding) VALUES (?, ?, ?, ?)",
            [(new_id(), resource_id, text, json.dumps(vec)) for text, vec in items],
        )

    def _insert_messages(self, chat_id: str, messages: Iterable[tuple[str, str]]) -> None:
        # One statement per row so created_at/rowid follow insertion order.
        for role, content in messages:
            self._conn.execute(
                "INSERT INTO chat_messages (id, chat_id, role, content) VALUES (?, ?, ?, ?)",
                (new_id(), chat_id, role, content),
            )


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_resource(row: sqlite3.Row) -> Resource:
    return Resource(id=row["id"], content=row["content"], created_at=row["created_at"])


def _row_to_embedding(row: sqlite3.Row) -> Embedding:
    return Embedding(
        id=row["id"],
        resource_id=row["resource_id"],
        content=row["content"],
        vector=json.loads(row["embedding"]),
        created_at=row["created_at"],
    )


def _row_to_chat(row: sqlite3.Row) -> Chat:
    return Chat(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_message(row: sqlite3.Row) -> ChatMessage:
    return ChatMessage(
        id=row["id"],
        chat_id=row["chat_id"],
        role=row["role"],
        content=row["content"],
        created_at=row["created_at"],
    )
