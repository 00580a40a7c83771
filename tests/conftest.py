"""Pytest configuration and shared fixtures."""
from __future__ import annotations

from pathlib import Path
import pytest

_CHAT_MEMORY_ENV = [
    "BROWSEROS_CHAT_MEMORY_ID",
    "BROWSEROS_CHAT_MEMORY_PATH",
    "BROWSEROS_CHAT_MEMORY_MAX_TOKENS",
    "BROWSEROS_CHAT_MEMORY_JOURNAL_MODE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run every test without chat memory env vars, inside a scratch cwd."""
    for var in _CHAT_MEMORY_ENV:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "chat_memory.sqlite"
