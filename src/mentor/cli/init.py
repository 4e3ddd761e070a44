"""mentor init — create the database and a project config.

Creates:
  .mentor.db   — SQLite database with platform and assistant tables
  mentor.yaml  — project config with commented defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from mentor.db.connection import Database
from mentor.db.schema import CURRENT_VERSION, initialize

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")

_PROJECT_YAML = """\
# Mentor project config. Values here override ~/.mentor/config.yaml.
# API keys are never read from this file; use environment variables.

# generation:
#   model: "openai/gpt-4o"
#   max_steps: 3
#   temperature: 0.0
#   max_tokens: 1024

# embedding:
#   model: "openai/text-embedding-3-small"
#   dimensions: 1536

# retrieval:
#   top_k: 4
#   min_similarity: 0.5

# chat:
#   default_title: "New Conversation"

# database:
#   path: ".mentor.db"
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
) -> None:
    """Initialize a Mentor project: database plus mentor.yaml."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    db_path = project_dir / ".mentor.db"
    if db_path.exists():
        console.print(f"[yellow]⚠[/]  {db_path} already exists; running pending migrations only.")

    with Database(db_path) as conn:
        initialize(conn)
    console.print(f"  [green]✓[/] {db_path.name} (schema v{CURRENT_VERSION})")

    yaml_path = project_dir / "mentor.yaml"
    if yaml_path.exists():
        console.print(f"  [dim]-[/] {yaml_path.name} kept")
    else:
        yaml_path.write_text(_PROJECT_YAML, encoding="utf-8")
        console.print(f"  [green]✓[/] {yaml_path.name}")

    console.print("\n[bold green]✓ Mentor initialized.[/]")
    console.print("\nNext steps:")
    console.print('  1. mentor ingest --text "..."             (build knowledge base)')
    console.print('  2. mentor ask "..." --user <id>          (chat from the terminal)')
    console.print("  3. mentor serve                          (start the HTTP API)")
