"""
Persistent message manager.

Wraps ``MessageManager`` so that every mutation rewrites the stored
conversation, and replays the stored conversation on construction.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from langchain_core.messages import BaseMessage

from chat_memory.config import ChatMemoryConfig
from chat_memory.core.message_manager import MessageManager
from chat_memory.core.protocol import MessageType
from chat_memory.core.serialization import deserialize_message, serialize_message
from chat_memory.memory.base import ChatMemoryAdapter
from chat_memory.memory.in_memory_store import InMemoryChatMemory
from chat_memory.memory.sqlite_store import SQLiteChatMemory
from chat_memory.utils.logging import get_logger

logger = get_logger(__name__)


class ManagerMode(str, Enum):
    """Whether mutations are written back to storage"""
    LIVE = "live"
    RESTORING = "restoring"


class PersistentMessageManager(MessageManager):
    """
    MessageManager whose history survives process restarts.

    Storage is chosen once at construction:
    - a supplied adapter, if it initializes and reports available
    - otherwise SQLite at the configured path, if it opens
    - otherwise process memory

    Every mutation (add, remove_last, remove_messages_by_type, set_max_tokens)
    re-serializes the full message list and replaces the stored conversation;
    ``clear`` deletes it. Storage failures are logged, never raised.
    """

    def __init__(
        self,
        max_tokens: Optional[int] = None,
        conversation_id: Optional[str] = None,
        db_path: Optional[Union[str, Path]] = None,
        memory: Optional[ChatMemoryAdapter] = None,
        config: Optional[ChatMemoryConfig] = None,
    ) -> None:
        """
        Args:
            max_tokens: Token budget (config / default when omitted)
            conversation_id: Conversation to load and write
            db_path: SQLite file used when no adapter is supplied
            memory: Storage adapter to use instead of SQLite
            config: Fully resolved settings; overrides the three options above
        """
        self.config = config or ChatMemoryConfig.resolve(
            conversation_id=conversation_id,
            db_path=db_path,
            max_tokens=max_tokens,
        )
        super().__init__(self.config.max_tokens)

        self._conversation_id = self.config.conversation_id
        self._mode = ManagerMode.LIVE
        self._memory = self._initialize_memory(memory)
        self._restore_from_memory()

    # ── state ─────────────────────────────────────────────────────────────────

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def memory(self) -> ChatMemoryAdapter:
        return self._memory

    @property
    def mode(self) -> ManagerMode:
        return self._mode

    @property
    def is_restoring(self) -> bool:
        return self._mode is ManagerMode.RESTORING

    # ── mutations ─────────────────────────────────────────────────────────────

    def add(self, message: BaseMessage, position: Optional[int] = None) -> None:
        super().add(message, position)
        if not self.is_restoring:
            self._persist_messages()

    def remove_last(self) -> bool:
        removed = super().remove_last()
        if removed and not self.is_restoring:
            self._persist_messages()
        return removed

    def remove_messages_by_type(self, message_type: MessageType) -> int:
        removed = super().remove_messages_by_type(message_type)
        if removed and not self.is_restoring:
            self._persist_messages()
        return removed

    def set_max_tokens(self, new_max_tokens: int) -> None:
        super().set_max_tokens(new_max_tokens)
        if not self.is_restoring:
            self._persist_messages()

    def clear(self) -> None:
        super().clear()
        if self.is_restoring:
            return
        try:
            self._memory.clear_conversation(self._conversation_id)
        except Exception as exc:
            logger.warning("Failed to clear stored conversation: %s", exc)

    def close(self) -> None:
        """Release the storage handle. In-memory messages are kept."""
        try:
            self._memory.close()
        except Exception as exc:
            logger.warning("Failed to close chat memory: %s", exc)

    # ── storage ───────────────────────────────────────────────────────────────

    def _initialize_memory(self, memory: Optional[ChatMemoryAdapter]) -> ChatMemoryAdapter:
        if memory is not None:
            try:
                memory.initialize()
            except Exception as exc:
                logger.warning("Failed to initialize provided chat memory: %s", exc)
            if memory.is_available():
                return memory
            logger.warning("Provided chat memory is unavailable - using in-memory fallback")
            return self._create_fallback_memory()

        sqlite_memory = SQLiteChatMemory(
            db_path=self.config.db_path,
            journal_mode=self.config.journal_mode,
        )
        sqlite_memory.initialize()
        if sqlite_memory.is_available():
            return sqlite_memory

        logger.warning("SQLite chat memory unavailable - using in-memory fallback")
        return self._create_fallback_memory()

    @staticmethod
    def _create_fallback_memory() -> ChatMemoryAdapter:
        fallback = InMemoryChatMemory()
        fallback.initialize()
        return fallback

    def _restore_from_memory(self) -> None:
        """Replay stored rows through the base add; the first bad row ends the pass."""
        try:
            stored = self._memory.get_messages(self._conversation_id)
            if not stored:
                return

            self._mode = ManagerMode.RESTORING
            for record in stored:
                super().add(deserialize_message(record))
            logger.info(
                "Restored %d message(s) for conversation %r",
                len(self.get_messages()),
                self._conversation_id,
            )
        except Exception as exc:
            logger.warning("Failed to restore chat history: %s", exc)
        finally:
            self._mode = ManagerMode.LIVE

    def _persist_messages(self) -> None:
        try:
            rows = [
                serialize_message(message, index)
                for index, message in enumerate(self.get_messages())
            ]
            self._memory.replace_conversation(self._conversation_id, rows)
        except Exception as exc:
            logger.warning("Failed to persist chat history: %s", exc)
