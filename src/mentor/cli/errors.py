"""Mentor rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from mentor.cli.errors import err_no_db
    console.print(err_no_db(".mentor.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*."""
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".mentor.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  mentor init"
    )


def err_unknown_user(user_id: str) -> str:
    """Caller id does not resolve to a platform user."""
    return (
        f"[red]Error:[/] Unauthorized — no user with id '{user_id}'.\n"
        "  Pass an existing user id with --user."
    )


def err_chat_not_found(chat_id: str) -> str:
    """Chat missing or owned by another user."""
    return (
        f"[yellow]Chat not found:[/] '{chat_id}'.\n"
        "  Run:  mentor chats list --user <id>  to see your chats."
    )


def err_empty_content() -> str:
    """Nothing to ingest."""
    return (
        "[red]Error:[/] Nothing to ingest.\n"
        "  Pass --text \"...\" or --file PATH with non-empty content."
    )


def err_embedding_failed(detail: str) -> str:
    """The embedding provider call failed; nothing was stored."""
    return (
        f"[red]Error:[/] Embedding failed — nothing was stored.\n"
        f"  {detail}\n"
        "  Check your API key and network, then retry."
    )
