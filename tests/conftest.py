"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from promptchronicle.db.connection import Database
from promptchronicle.db.models import ChronicleSnapshot, LibraryItem
from promptchronicle.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".chronicle.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Keep the user's ~/.prompt-chronicle and env vars out of every test."""
    monkeypatch.setattr(
        "promptchronicle.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml"
    )
    monkeypatch.delenv("PROMPT_CHRONICLE_DB", raising=False)
    monkeypatch.delenv("PROMPT_CHRONICLE_PASSWORD", raising=False)


def make_item(
    id: str,
    created_at: str = "2024-01-01T00:00:00.000Z",
    parent_id: str | None = None,
    root_id: str | None = None,
    **kwargs,
) -> LibraryItem:
    return LibraryItem(
        id=id,
        title=kwargs.pop("title", f"Item {id}"),
        refactored_prompt=kwargs.pop("refactored_prompt", f"prompt {id}\n"),
        created_at=created_at,
        parent_id=parent_id,
        root_id=root_id,
        **kwargs,
    )


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def snapshot():
    return ChronicleSnapshot(
        original_prompt="write a poem",
        refactored_prompt="Write a four-line poem about the sea.",
        tags=("poetry",),
        category="creative",
    )
