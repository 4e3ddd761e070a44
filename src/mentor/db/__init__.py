"""Mentor database layer."""

from mentor.db.connection import Database
from mentor.db.migrations import MIGRATIONS, run_migrations
from mentor.db.platform import PlatformData
from mentor.db.repository import Repository
from mentor.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "PlatformData",
    "Repository",
]
