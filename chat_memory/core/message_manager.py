"""
In-memory message pipeline.

Keeps the ordered list of langchain messages for one agent run and enforces
an approximate token budget by evicting the oldest non-system messages.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.messages.utils import count_tokens_approximately

from chat_memory.config import DEFAULT_MAX_TOKENS
from chat_memory.core.protocol import (
    BrowserStateMessage,
    MessageType,
    TodoListMessage,
    get_message_type,
)
from chat_memory.utils.logging import get_logger

logger = get_logger(__name__)


class MessageManager:
    """Ordered message list with a token budget."""

    def __init__(self, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        self._messages: List[BaseMessage] = []
        self._token_counts: List[int] = []
        self._max_tokens = max_tokens

    # ── primitives ─────────────────────────────────────────────────────────────

    def add(self, message: BaseMessage, position: Optional[int] = None) -> None:
        """
        Add *message* at *position* (append when ``None``).

        Oldest non-system messages are evicted first when the budget would be
        exceeded. A message larger than the whole budget is still kept.
        """
        tokens = self._count_tokens(message)
        if self.total_tokens + tokens > self._max_tokens:
            self._trim_to_fit(tokens)

        if position is None or position >= len(self._messages):
            self._messages.append(message)
            self._token_counts.append(tokens)
        else:
            index = max(position, 0)
            self._messages.insert(index, message)
            self._token_counts.insert(index, tokens)

    def remove_last(self) -> bool:
        """Remove the newest message. Returns False when the list is empty."""
        if not self._messages:
            return False
        self._messages.pop()
        self._token_counts.pop()
        return True

    def remove_messages_by_type(self, message_type: MessageType) -> int:
        """Remove every message of *message_type*; return how many were removed."""
        kept = [
            (m, t) for m, t in zip(self._messages, self._token_counts)
            if get_message_type(m) != message_type
        ]
        removed = len(self._messages) - len(kept)
        if removed:
            self._messages = [m for m, _ in kept]
            self._token_counts = [t for _, t in kept]
        return removed

    def clear(self) -> None:
        self._messages = []
        self._token_counts = []

    def set_max_tokens(self, new_max_tokens: int) -> None:
        """Change the budget, evicting old messages if the list no longer fits."""
        if new_max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {new_max_tokens}")
        self._max_tokens = new_max_tokens
        if self.total_tokens > self._max_tokens:
            self._trim_to_fit(0)

    # ── producers ──────────────────────────────────────────────────────────────

    def add_system(self, content: str, position: int = 0) -> None:
        """Replace any system message with *content*."""
        self.remove_messages_by_type(MessageType.SYSTEM)
        self.add(SystemMessage(content=content), position)

    def add_human(self, content: Any) -> None:
        self.add(HumanMessage(content=content))

    def add_ai(self, content: Any, tool_calls: Optional[List[Dict[str, Any]]] = None) -> None:
        if tool_calls:
            self.add(AIMessage(content=content, tool_calls=tool_calls))
        else:
            self.add(AIMessage(content=content))

    def add_tool(self, content: Any, tool_call_id: str, status: str = "success") -> None:
        self.add(ToolMessage(content=content, tool_call_id=tool_call_id, status=status))

    def add_browser_state(self, content: str) -> None:
        """Replace the previous browser state snapshot with *content*."""
        self.remove_messages_by_type(MessageType.BROWSER_STATE)
        self.add(BrowserStateMessage(content))

    def add_todo_list(self, content: str) -> None:
        """Replace the previous todo list with *content*."""
        self.remove_messages_by_type(MessageType.TODO_LIST)
        self.add(TodoListMessage(content))

    # ── queries ────────────────────────────────────────────────────────────────

    def get_messages(self) -> List[BaseMessage]:
        """Return a copy of the message list (oldest first)."""
        return list(self._messages)

    def get_messages_by_type(self, message_type: MessageType) -> List[BaseMessage]:
        return [m for m in self._messages if get_message_type(m) == message_type]

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    @property
    def total_tokens(self) -> int:
        return sum(self._token_counts)

    def remaining_tokens(self) -> int:
        return max(self._max_tokens - self.total_tokens, 0)

    def fork(self, with_history: bool = True) -> "MessageManager":
        """Return an independent in-memory manager with the same budget."""
        forked = MessageManager(self._max_tokens)
        if with_history:
            forked._messages = list(self._messages)
            forked._token_counts = list(self._token_counts)
        return forked

    # ── internals ──────────────────────────────────────────────────────────────

    @staticmethod
    def _count_tokens(message: BaseMessage) -> int:
        return count_tokens_approximately([message])

    def _trim_to_fit(self, tokens_needed: int) -> None:
        """Evict oldest non-system messages until *tokens_needed* fits."""
        index = 0
        evicted = 0
        while self.total_tokens + tokens_needed > self._max_tokens and index < len(self._messages):
            if get_message_type(self._messages[index]) == MessageType.SYSTEM:
                index += 1
                continue
            self._messages.pop(index)
            self._token_counts.pop(index)
            evicted += 1
        if evicted:
            logger.info("Evicted %d message(s) to stay within %d tokens", evicted, self._max_tokens)
