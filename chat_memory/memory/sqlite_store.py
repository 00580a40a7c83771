"""
SQLite-backed chat memory for cross-restart conversation persistence.

Schema
------
conversations : id TEXT PK, created_at INTEGER, updated_at INTEGER
chat_messages : id INTEGER PK, conversation_id TEXT FK (ON DELETE CASCADE),
                role TEXT, content TEXT, metadata TEXT NULL (JSON object),
                sequence INTEGER, created_at INTEGER
                INDEX (conversation_id, sequence)

Timestamps are milliseconds since the epoch. Every write replaces the whole
row set of a conversation inside one transaction.

Usage
-----
    memory = SQLiteChatMemory(db_path="data/chat_memory.sqlite")
    memory.initialize()
    if memory.is_available():
        memory.replace_conversation("default", rows)
        rows = memory.get_messages("default")
"""
from __future__ import annotations

import importlib
import json
from pathlib import Path
from types import ModuleType
from typing import Any, List, Optional, Sequence, Union

from chat_memory.config import DEFAULT_JOURNAL_MODE, normalize_journal_mode, resolve_db_path
from chat_memory.core.protocol import ChatMemoryMessage
from chat_memory.core.serialization import now_ms
from chat_memory.memory.base import ChatMemoryAdapter
from chat_memory.utils.logging import get_logger

logger = get_logger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS conversations (
        id          TEXT    PRIMARY KEY,
        created_at  INTEGER NOT NULL,
        updated_at  INTEGER NOT NULL
    );

    CREATE TABLE IF NOT EXISTS chat_messages (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id TEXT    NOT NULL,
        role            TEXT    NOT NULL,
        content         TEXT    NOT NULL,
        metadata        TEXT,
        sequence        INTEGER NOT NULL,
        created_at      INTEGER NOT NULL,
        FOREIGN KEY(conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
    );

    CREATE INDEX IF NOT EXISTS idx_chat_messages_conversation_sequence
        ON chat_messages(conversation_id, sequence);
"""

# sqlite3 keeps compiled statements in a per-connection cache keyed by SQL text,
# so reusing these exact strings reuses the prepared statements.
_UPSERT_CONVERSATION = """
    INSERT INTO conversations (id, created_at, updated_at)
    VALUES (?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET updated_at = excluded.updated_at
"""
_DELETE_MESSAGES = "DELETE FROM chat_messages WHERE conversation_id = ?"
_INSERT_MESSAGE = """
    INSERT INTO chat_messages (conversation_id, role, content, metadata, sequence, created_at)
    VALUES (?, ?, ?, ?, ?, ?)
"""
_DELETE_CONVERSATION = "DELETE FROM conversations WHERE id = ?"
_SELECT_MESSAGES = """
    SELECT role, content, metadata, sequence, created_at
    FROM chat_messages
    WHERE conversation_id = ?
    ORDER BY sequence ASC
"""


class SQLiteChatMemory(ChatMemoryAdapter):
    """SQLite conversation store holding one connection for its lifetime."""

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        journal_mode: str = DEFAULT_JOURNAL_MODE,
    ) -> None:
        """
        Parameters
        ----------
        db_path : str | Path, optional
            SQLite file. When omitted, ``BROWSEROS_CHAT_MEMORY_PATH`` and then
            ``./chat_memory.sqlite``.
        journal_mode : str
            SQLite journal mode applied on open (default ``WAL``).
        """
        self.db_path = resolve_db_path(db_path)
        self.journal_mode = normalize_journal_mode(journal_mode)
        self._driver: Optional[ModuleType] = None
        self._conn: Any = None

    # ── lifecycle ─────────────────────────────────────────────────────────────

    def initialize(self) -> None:
        self._ensure_database()

    def is_available(self) -> bool:
        return self._ensure_database() is not None

    def close(self) -> None:
        """Close the connection. A later call reopens it lazily."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        except self._driver.Error as exc:
            logger.warning("Failed to close SQLite memory at %s: %s", self.db_path, exc)
        finally:
            self._conn = None

    # ── public API ────────────────────────────────────────────────────────────

    def replace_conversation(
        self,
        conversation_id: str,
        messages: Sequence[ChatMemoryMessage],
    ) -> None:
        conn = self._ensure_database()
        if conn is None:
            return

        now = now_ms()
        try:
            with conn:
                conn.execute(_UPSERT_CONVERSATION, (conversation_id, now, now))
                conn.execute(_DELETE_MESSAGES, (conversation_id,))
                conn.executemany(
                    _INSERT_MESSAGE,
                    [
                        (
                            conversation_id,
                            row.role,
                            row.content,
                            json.dumps(row.metadata) if row.metadata else None,
                            row.sequence,
                            row.created_at if row.created_at is not None else now,
                        )
                        for row in messages
                    ],
                )
        except (self._driver.Error, TypeError, ValueError, RecursionError) as exc:
            logger.error("Failed to persist chat history: %s", exc)

    def get_messages(self, conversation_id: str) -> List[ChatMemoryMessage]:
        conn = self._ensure_database()
        if conn is None:
            return []

        try:
            rows = conn.execute(_SELECT_MESSAGES, (conversation_id,)).fetchall()
            return [self._row_to_message(r) for r in rows]
        except (self._driver.Error, ValueError, RecursionError) as exc:
            logger.error("Failed to load chat history: %s", exc)
            return []

    def clear_conversation(self, conversation_id: str) -> None:
        conn = self._ensure_database()
        if conn is None:
            return

        try:
            with conn:
                conn.execute(_DELETE_MESSAGES, (conversation_id,))
                conn.execute(_DELETE_CONVERSATION, (conversation_id,))
        except self._driver.Error as exc:
            logger.warning("Failed to clear chat history: %s", exc)

    # ── internals ─────────────────────────────────────────────────────────────

    def _load_driver(self) -> Optional[ModuleType]:
        """Return the sqlite3 module, or None when this interpreter lacks it."""
        if self._driver is None:
            try:
                self._driver = importlib.import_module("sqlite3")
            except ImportError:
                return None
        return self._driver

    def _ensure_database(self) -> Any:
        """Open the database on first use; None when it cannot be opened."""
        if self._conn is not None:
            return self._conn

        driver = self._load_driver()
        if driver is None:
            logger.warning("Failed to initialize SQLite memory: sqlite3 module is not available")
            return None

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            logger.debug("Could not create directory for %s: %s", self.db_path, exc)

        conn = None
        try:
            conn = driver.connect(str(self.db_path))
            conn.row_factory = driver.Row
            conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
            conn.execute("PRAGMA foreign_keys = ON")
            conn.executescript(_SCHEMA)
        except (driver.Error, OSError, ValueError) as exc:
            logger.warning("Failed to initialize SQLite memory at %s: %s", self.db_path, exc)
            if conn is not None:
                conn.close()
            return None

        self._conn = conn
        return conn

    @staticmethod
    def _row_to_message(row: Any) -> ChatMemoryMessage:
        metadata = None
        raw = row["metadata"]
        if isinstance(raw, str) and raw:
            try:
                decoded = json.loads(raw)
            except (ValueError, RecursionError):
                decoded = None
            metadata = decoded if isinstance(decoded, dict) else None

        created_at = row["created_at"]
        return ChatMemoryMessage(
            role=row["role"],
            content=row["content"] if isinstance(row["content"], str) else "",
            sequence=int(row["sequence"] or 0),
            created_at=created_at if isinstance(created_at, int) else None,
            metadata=metadata,
        )
