"""mentor ask / chats — talk to the assistant from the terminal.

  mentor ask "What courses am I enrolled in?" --user <id>
  mentor ask "And the deadlines?" --user <id> --chat-id <chat>
  mentor chats list --user <id>
  mentor chats show <chat> --user <id>
  mentor chats delete <chat> --user <id>
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from mentor.chat.events import (
    STATUS_ERROR,
    ChatCreated,
    ErrorText,
    StatusEvent,
    TextDelta,
    ToolCallEvent,
    ToolResultEvent,
)
from mentor.chat.orchestrator import ChatRequest
from mentor.cli.errors import err_chat_not_found, err_no_db, err_unknown_user
from mentor.config import load_config
from mentor.db.connection import Database
from mentor.db.schema import initialize
from mentor.errors import AuthError
from mentor.services import build_services

console = Console()

chats_app = typer.Typer(help="List, show and delete saved chats.", no_args_is_help=True)

_UserOpt = Annotated[str, typer.Option("--user", "-u", help="Caller user id.")]
_DbOpt = Annotated[Path | None, typer.Option("--db", help="Path to the database.")]


def ask_cmd(
    message: Annotated[str, typer.Argument(help="Your message to the assistant.")],
    user: _UserOpt,
    chat_id: Annotated[
        str | None,
        typer.Option("--chat-id", "-c", help="Continue an existing chat."),
    ] = None,
    db: _DbOpt = None,
) -> None:
    """Send one message and stream the assistant's reply."""
    cfg = load_config()
    conn = _open_existing_db(db or Path(cfg.database.path))
    try:
        services = build_services(conn, cfg)

        history: list[dict] = []
        if chat_id is not None:
            found = services.transcripts.get_chat_with_messages(chat_id)
            if found is None or found.chat.user_id != user:
                console.print(err_chat_not_found(chat_id))
                raise typer.Exit(1)
            history = [{"role": m.role, "content": m.content} for m in found.messages]
        history.append({"role": "user", "content": message})

        try:
            events = services.orchestrator.stream(
                ChatRequest(history=history, caller_id=user, chat_id=chat_id)
            )
        except AuthError:
            console.print(err_unknown_user(user))
            raise typer.Exit(1)

        failed = False
        for event in events:
            if isinstance(event, TextDelta):
                console.print(event.text, end="", markup=False, highlight=False, soft_wrap=True)
            elif isinstance(event, ToolCallEvent):
                console.print(f"[dim]⚙ {event.name}[/]")
            elif isinstance(event, ToolResultEvent) and event.is_error:
                console.print(f"[yellow]⚠ {event.name} failed[/]")
            elif isinstance(event, ErrorText):
                console.print("\n" + event.message, style="red", markup=False)
                failed = True
            elif isinstance(event, StatusEvent) and event.status == STATUS_ERROR:
                failed = True
                if event.message:
                    console.print("\n" + event.message, style="yellow", markup=False)
            elif isinstance(event, ChatCreated):
                console.print(f"\n[dim]Chat id: {event.chat_id}[/]")
        console.print()
    finally:
        conn.close()

    if failed:
        raise typer.Exit(1)


@chats_app.command("list")
def chats_list_cmd(user: _UserOpt, db: _DbOpt = None) -> None:
    """List your chats, most recent first."""
    cfg = load_config()
    conn = _open_existing_db(db or Path(cfg.database.path))
    try:
        chats = build_services(conn, cfg).transcripts.list_chats(user)
        if not chats:
            console.print("[dim]No chats yet.[/]")
            return
        table = Table(title="Chats")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("Updated")
        for c in chats:
            table.add_row(c.id, c.title, c.updated_at or "")
        console.print(table)
    finally:
        conn.close()


@chats_app.command("show")
def chats_show_cmd(
    chat_id: Annotated[str, typer.Argument(help="Chat id.")],
    user: _UserOpt,
    db: _DbOpt = None,
) -> None:
    """Print a chat transcript."""
    cfg = load_config()
    conn = _open_existing_db(db or Path(cfg.database.path))
    try:
        found = build_services(conn, cfg).transcripts.get_chat_with_messages(chat_id)
        if found is None or found.chat.user_id != user:
            console.print(err_chat_not_found(chat_id))
            raise typer.Exit(1)
        console.print(f"[bold]{found.chat.title}[/]")
        for m in found.messages:
            style = "cyan" if m.role == "user" else "green"
            console.print(f"[{style}]{m.role}:[/] ", end="")
            console.print(m.content, markup=False, highlight=False)
    finally:
        conn.close()


@chats_app.command("delete")
def chats_delete_cmd(
    chat_id: Annotated[str, typer.Argument(help="Chat id.")],
    user: _UserOpt,
    db: _DbOpt = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Delete a chat and all of its messages."""
    cfg = load_config()
    conn = _open_existing_db(db or Path(cfg.database.path))
    try:
        services = build_services(conn, cfg)
        chat = services.repo.get_chat(chat_id)
        if chat is None or chat.user_id != user:
            console.print(err_chat_not_found(chat_id))
            raise typer.Exit(1)
        if not yes and not typer.confirm(f"Delete chat '{chat.title}'?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)
        services.transcripts.delete_chat(chat_id)
        console.print(f"[green]✓[/] Deleted chat {chat_id}")
    finally:
        conn.close()


def _open_existing_db(db_path: Path) -> sqlite3.Connection:
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    conn = Database(db_path).connect()
    initialize(conn)
    return conn
