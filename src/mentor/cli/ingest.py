"""mentor ingest / resources — manage the knowledge base.

  mentor ingest --text "Grades range from 0 to 100. Late work is penalized."
  mentor ingest --file handbook.txt
  mentor resources
  mentor resources --delete <resource-id>
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from mentor.cli.errors import (
    err_embedding_failed,
    err_empty_content,
    err_no_api_key,
    err_no_db,
)
from mentor.config import load_config
from mentor.db.connection import Database
from mentor.db.repository import Repository
from mentor.db.schema import initialize
from mentor.errors import EmbeddingServiceError
from mentor.ingest.chunker import SentenceChunker
from mentor.ingest.embedder import Embedder, EmbeddingConfig
from mentor.ingest.knowledge import KnowledgeStore
from mentor.rag.llm_client import validate_api_key

console = Console()


def ingest_cmd(
    text: Annotated[
        str | None,
        typer.Option("--text", "-t", help="Text to add to the knowledge base."),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="UTF-8 text file to add as one resource."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (created if missing)."),
    ] = None,
) -> None:
    """Chunk, embed and store text as one knowledge resource."""
    content = text or ""
    if file is not None:
        content = file.read_text(encoding="utf-8", errors="replace")

    chunks = SentenceChunker().chunk(content)
    if not chunks:
        console.print(err_empty_content())
        raise typer.Exit(1)

    cfg = load_config()
    db_path = db or Path(cfg.database.path)

    try:
        validate_api_key(cfg.embedding.model)
    except EnvironmentError:
        console.print(err_no_api_key(cfg.embedding.model.split("/")[0]))
        raise typer.Exit(1)

    total_tokens = sum(SentenceChunker.count_tokens(c) for c in chunks)
    console.print(f"  [dim]{len(chunks)} chunks · ~{total_tokens:,} tokens[/]")

    conn = _open_db(db_path)
    try:
        embedder = Embedder(
            EmbeddingConfig(model=cfg.embedding.model, dimensions=cfg.embedding.dimensions)
        )
        store = KnowledgeStore(Repository(conn), embedder)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task("Embedding…", total=None)
            resource = store.ingest(content)
    except EmbeddingServiceError as exc:
        console.print(err_embedding_failed(str(exc)))
        raise typer.Exit(1)
    finally:
        conn.close()

    console.print(f"[green]✓[/] Stored resource {resource.id} ({len(chunks)} chunks)")


def resources_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    delete: Annotated[
        str | None,
        typer.Option("--delete", help="Delete the resource with this id (and its chunks)."),
    ] = None,
) -> None:
    """List knowledge resources, or delete one."""
    db_path = db or Path(load_config().database.path)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    conn = _open_db(db_path)
    try:
        repo = Repository(conn)
        if delete is not None:
            if repo.delete_resource(delete):
                console.print(f"[green]✓[/] Deleted resource {delete}")
            else:
                console.print(f"[yellow]No resource with id '{delete}'.[/]")
            return

        resources = repo.list_resources()
        if not resources:
            console.print("[dim]Knowledge base is empty.[/]")
            return

        table = Table(title="Knowledge resources")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Chunks", justify="right")
        table.add_column("Created")
        table.add_column("Content")
        for r in resources:
            preview = r.content if len(r.content) <= 60 else r.content[:57] + "…"
            table.add_row(r.id, str(repo.count_embeddings(r.id)), r.created_at or "", preview)
        console.print(table)
    finally:
        conn.close()


def _open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the database and run migrations."""
    conn = Database(db_path).connect()
    initialize(conn)
    return conn
