"""Prompt library persistence layer."""

from promptchronicle.db.connection import Database
from promptchronicle.db.migrations import MIGRATIONS, run_migrations
from promptchronicle.db.repository import Repository
from promptchronicle.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "Repository",
]
