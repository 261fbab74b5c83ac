"""Shared fixtures: a scripted completion service and small on-disk sources."""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from pathlib import Path

import pytest
from langchain_core.messages import BaseMessage


class ScriptedCompletionService:
    """Return canned replies in order and record every prompt it receives."""

    def __init__(self, replies: Sequence[str], default: str = "Final answer from the fake model.") -> None:
        self.replies = list(replies)
        self.default = default
        self.calls: list[list[BaseMessage]] = []

    def complete(self, messages: Sequence[BaseMessage]) -> str:
        self.calls.append(list(messages))
        if self.replies:
            return self.replies.pop(0)
        return self.default


@pytest.fixture
def scripted_llm() -> type[ScriptedCompletionService]:
    return ScriptedCompletionService


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "documents"
    directory.mkdir()
    (directory / "economia.txt").write_text(
        "Introdução à história econômica.\n"
        "Keynes publicou a Teoria Geral do Emprego, do Juro e da Moeda em 1936.\n"
        "Adam Smith escreveu A Riqueza das Nações.\n",
        encoding="utf-8",
    )
    (directory / "notes.md").write_text("Keynes emprego (ignored, not a .txt file)\n", encoding="utf-8")
    return directory


@pytest.fixture
def music_db_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "sqlite"
    directory.mkdir()
    conn = sqlite3.connect(directory / "chinook.db")
    try:
        conn.executescript(
            """
            CREATE TABLE genres (GenreId INTEGER PRIMARY KEY, Name TEXT);
            CREATE TABLE tracks (
                TrackId INTEGER PRIMARY KEY,
                Name TEXT,
                GenreId INTEGER REFERENCES genres(GenreId),
                UnitPrice REAL
            );
            """
        )
        conn.executemany(
            "INSERT INTO genres (GenreId, Name) VALUES (?, ?)",
            [(1, "Rock"), (2, "Jazz"), (3, "Blues")],
        )
        conn.executemany(
            "INSERT INTO tracks (Name, GenreId, UnitPrice) VALUES (?, ?, ?)",
            [(f"Track {i}", (i % 3) + 1, 0.99 + (i % 2)) for i in range(60)],
        )
        conn.commit()
    finally:
        conn.close()
    return directory
