"""Process-lifetime conversation store, used when SQLite is unavailable."""
from __future__ import annotations

import copy
from typing import Dict, List, Sequence

from chat_memory.core.protocol import ChatMemoryMessage
from chat_memory.memory.base import ChatMemoryAdapter
from chat_memory.utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryChatMemory(ChatMemoryAdapter):
    """Dict-backed store. Rows are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._store: Dict[str, List[ChatMemoryMessage]] = {}

    def initialize(self) -> None:
        pass

    def is_available(self) -> bool:
        return True

    def replace_conversation(
        self,
        conversation_id: str,
        messages: Sequence[ChatMemoryMessage],
    ) -> None:
        try:
            rows = [m.model_copy(deep=True) for m in messages]
        except (TypeError, copy.Error, RecursionError) as exc:
            logger.error("Failed to store chat history in memory: %s", exc)
            return
        self._store[conversation_id] = rows

    def get_messages(self, conversation_id: str) -> List[ChatMemoryMessage]:
        rows = self._store.get(conversation_id, [])
        return [m.model_copy(deep=True) for m in sorted(rows, key=lambda m: m.sequence)]

    def clear_conversation(self, conversation_id: str) -> None:
        self._store.pop(conversation_id, None)
