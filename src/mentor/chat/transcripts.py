"""Transcript store — durable, append-only chat records."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from mentor.db.models import Chat, ChatMessage
from mentor.db.repository import Repository
from mentor.errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"


@dataclass
class TurnResult:
    chat_id: str
    created: bool


@dataclass
class ChatWithMessages:
    chat: Chat
    messages: list[ChatMessage]

    def to_dict(self) -> dict:
        return {**self.chat.to_dict(), "messages": [m.to_dict() for m in self.messages]}


class TranscriptStore:
    """Append user/assistant turns to chats, creating the chat on first turn.

    Each append is one transaction: both messages and the ``updated_at`` bump
    land together or not at all.

    Args:
        repo: Open Repository instance.
        default_title: Title given to chats created by append_turn().
    """

    def __init__(self, repo: Repository, default_title: str = DEFAULT_TITLE) -> None:
        self._repo = repo
        self._default_title = default_title

    def append_turn(
        self,
        chat_id: str | None,
        user_id: str,
        user_message: str,
        assistant_message: str,
    ) -> TurnResult:
        """Record one exchange.

        Args:
            chat_id: Existing chat to append to, or None to start a new one.
            user_id: Caller; must own *chat_id* when given.
            user_message: The user's prompt.
            assistant_message: The assistant's final text.

        Returns:
            TurnResult with the chat id and whether the chat was created.

        Raises:
            PersistenceError: Chat missing or owned by someone else, or the
                write failed.
        """
        messages = [("user", user_message), ("assistant", assistant_message)]
        try:
            if chat_id is None:
                chat = self._repo.create_chat_with_messages(
                    user_id, self._default_title, messages
                )
                logger.info("Created chat %s for user %s", chat.id, user_id)
                return TurnResult(chat_id=chat.id, created=True)

            existing = self._repo.get_chat(chat_id)
            if existing is None or existing.user_id != user_id:
                raise PersistenceError(f"Chat '{chat_id}' not found for user '{user_id}'.")
            self._repo.append_messages(chat_id, messages)
            return TurnResult(chat_id=chat_id, created=False)
        except sqlite3.Error as exc:
            logger.error("Transcript write failed for user %s: %s", user_id, exc)
            raise PersistenceError(f"Could not save chat turn: {exc}") from exc

    def list_chats(self, user_id: str) -> list[Chat]:
        """The user's chats, most recently updated first."""
        return self._repo.list_chats(user_id)

    def owns_chat(self, chat_id: str, user_id: str) -> bool:
        chat = self._repo.get_chat(chat_id)
        return chat is not None and chat.user_id == user_id

    def get_chat_with_messages(self, chat_id: str) -> ChatWithMessages | None:
        chat = self._repo.get_chat(chat_id)
        if chat is None:
            return None
        return ChatWithMessages(chat=chat, messages=self._repo.list_messages(chat_id))

    def rename_chat(self, chat_id: str, title: str) -> bool:
        if not title.strip():
            raise ValueError("Chat title must not be blank.")
        return self._repo.rename_chat(chat_id, title.strip())

    def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat and all of its messages."""
        deleted = self._repo.delete_chat(chat_id)
        if deleted:
            logger.info("Deleted chat %s", chat_id)
        return deleted
