"""Shared fixtures for store-backed tests."""

import os

import pytest

# 本番既定値（STRICT_MODE=true / .data 配下の SQLite）に依存しないよう先に上書きする。
os.environ.setdefault("STRICT_MODE", "false")
os.environ.setdefault("STORE_BACKEND", "memory")

from flashcards.store import InMemoryStore, SQLiteStore  # noqa: E402

NOW = 1_700_000_000_000


@pytest.fixture()
def sqlite_store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "flashcards.sqlite3"))


@pytest.fixture()
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, tmp_path):
    """Run the test against both bundled store implementations."""
    if request.param == "sqlite":
        return SQLiteStore(str(tmp_path / "flashcards.sqlite3"))
    return InMemoryStore()


@pytest.fixture()
def now() -> int:
    return NOW
