"""Domain models for the Mentor database layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class Resource:
    id: str
    content: str
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "content": self.content, "createdAt": self.created_at}


@dataclass
class Embedding:
    """One embedded chunk of a resource."""

    id: str
    resource_id: str
    content: str
    vector: list[float] = field(default_factory=list)
    created_at: str | None = None


@dataclass
class Chat:
    id: str
    user_id: str
    title: str
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class ChatMessage:
    id: str
    chat_id: str
    role: str  # user | assistant | system | tool
    content: str
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at,
        }


@dataclass
class User:
    id: str
    name: str
    email: str
    role: str  # lecturer | student | admin

    def to_dict(self) -> dict:
        return asdict(self)
