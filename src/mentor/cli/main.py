"""Mentor CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.logging import RichHandler

from mentor.api.app import create_app
from mentor.cli.chat import ask_cmd, chats_app
from mentor.cli.ingest import ingest_cmd, resources_cmd
from mentor.cli.init import init_cmd
from mentor.config import load_config


def _installed_version() -> str:
    try:
        return importlib.metadata.version("mentor")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mentor {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="mentor",
    help=(
        "Mentor — LMS assistant core.\n\n"
        "  mentor ingest   Add text to the knowledge base.\n"
        "  mentor ask      Chat with the assistant as a platform user.\n"
        "  mentor serve    Run the HTTP API used by the dashboard."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
) -> None:
    """Mentor — LMS assistant core."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


app.command("init")(init_cmd)
app.command("ingest")(ingest_cmd)
app.command("resources")(resources_cmd)
app.command("ask")(ask_cmd)
app.add_typer(chats_app, name="chats")


@app.command("serve")
def serve_cmd(
    host: Annotated[str, typer.Option("--host", help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port.")] = 8000,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (created if missing)."),
    ] = None,
) -> None:
    """Serve the chat and knowledge API over HTTP."""
    cfg = load_config()
    if db is not None:
        cfg.database.path = str(db)
    uvicorn.run(create_app(cfg), host=host, port=port)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Mentor version."""
    typer.echo(f"mentor {_installed_version()}")


if __name__ == "__main__":
    app()
