"""FastAPI boundary: chat streaming, chat history and knowledge ingestion.

The caller identity comes from the ``X-User-Id`` header set by the dashboard's
auth layer. Each request opens its own SQLite connection.
"""

from __future__ import annotations

import logging
from typing import Iterator

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from pydantic import BaseModel

from mentor.chat.events import StreamEvent, encode_event
from mentor.chat.orchestrator import ChatRequest
from mentor.config import MentorConfig
from mentor.db.connection import Database
from mentor.db.schema import initialize
from mentor.errors import AuthError, ChatNotFoundError, EmbeddingServiceError
from mentor.ingest.embedder import Embedder
from mentor.rag.llm_client import ChatModel
from mentor.services import Services, build_services

logger = logging.getLogger(__name__)


class MessageIn(BaseModel):
    role: str
    content: str


class ChatBody(BaseModel):
    messages: list[MessageIn]
    chatId: str | None = None


class ResourceBody(BaseModel):
    content: str


class RenameBody(BaseModel):
    title: str


def create_app(
    cfg: MentorConfig | None = None,
    *,
    model: ChatModel | None = None,
    embedder: Embedder | None = None,
) -> FastAPI:
    """Build the API app.

    Args:
        cfg: Configuration; defaults to MentorConfig().
        model: Chat model override (tests).
        embedder: Embedder override (tests).
    """
    cfg = cfg or MentorConfig()
    db = Database(cfg.database.path)

    with db as conn:
        initialize(conn)

    app = FastAPI(title="Mentor Assistant API", version="0.1.0")

    def open_services() -> Services:
        return build_services(db.connect(), cfg, model=model, embedder=embedder)

    def get_services() -> Iterator[Services]:
        services = open_services()
        try:
            yield services
        finally:
            services.repo.conn.close()

    def require_user(
        services: Services = Depends(get_services),
        x_user_id: str | None = Header(default=None),
    ) -> str:
        if not x_user_id or services.platform.get_user(x_user_id) is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return x_user_id

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/api/chat")
    def chat(body: ChatBody, x_user_id: str | None = Header(default=None)):
        services = open_services()
        conn = services.repo.conn
        chat_request = ChatRequest(
            history=[m.model_dump() for m in body.messages],
            caller_id=x_user_id,
            chat_id=body.chatId,
        )
        try:
            events = services.orchestrator.stream(chat_request)
        except AuthError:
            conn.close()
            logger.info("Rejected unauthenticated chat request")
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        except ChatNotFoundError:
            conn.close()
            return JSONResponse({"error": "Chat not found"}, status_code=404)
        except ValueError as exc:
            conn.close()
            return JSONResponse({"error": str(exc)}, status_code=400)

        return StreamingResponse(
            _encode_stream(events, conn),
            media_type="text/plain; charset=utf-8",
            headers={"X-Vercel-AI-Data-Stream": "v1"},
            background=BackgroundTask(_finish_turn, events, conn),
        )

    @app.get("/api/chats")
    def list_chats(
        user_id: str = Depends(require_user), services: Services = Depends(get_services)
    ) -> list[dict]:
        return [c.to_dict() for c in services.transcripts.list_chats(user_id)]

    @app.get("/api/chats/{chat_id}")
    def get_chat(
        chat_id: str,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        found = services.transcripts.get_chat_with_messages(chat_id)
        if found is None or found.chat.user_id != user_id:
            raise HTTPException(status_code=404, detail="Chat not found")
        return found.to_dict()

    @app.patch("/api/chats/{chat_id}")
    def rename_chat(
        chat_id: str,
        body: RenameBody,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        _require_owned_chat(services, chat_id, user_id)
        try:
            services.transcripts.rename_chat(chat_id, body.title)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return services.repo.get_chat(chat_id).to_dict()  # type: ignore[union-attr]

    @app.delete("/api/chats/{chat_id}", status_code=204)
    def delete_chat(
        chat_id: str,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> None:
        _require_owned_chat(services, chat_id, user_id)
        services.transcripts.delete_chat(chat_id)

    @app.get("/api/resources")
    def list_resources(
        user_id: str = Depends(require_user), services: Services = Depends(get_services)
    ) -> list[dict]:
        return [r.to_dict() for r in services.knowledge.all_resources()]

    @app.post("/api/resources", status_code=201)
    def add_resource(
        body: ResourceBody,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict:
        try:
            resource = services.knowledge.ingest(body.content)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except EmbeddingServiceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {**resource.to_dict(), "chunks": services.knowledge.count_chunks(resource.id)}

    return app


def _require_owned_chat(services: Services, chat_id: str, user_id: str) -> None:
    chat = services.repo.get_chat(chat_id)
    if chat is None or chat.user_id != user_id:
        raise HTTPException(status_code=404, detail="Chat not found")


def _encode_stream(events: Iterator[StreamEvent], conn) -> Iterator[str]:
    """Encode events for the wire; closes the turn and the connection on exit."""
    try:
        for event in events:
            yield encode_event(event)
    finally:
        _finish_turn(events, conn)


def _finish_turn(events: Iterator[StreamEvent], conn) -> None:
    """Release the turn and its connection once the response is done."""
    close = getattr(events, "close", None)
    if close is not None:
        close()
    conn.close()
