"""Conversation storage backends: SQLite with an in-process fallback."""
from .base import ChatMemoryAdapter
from .in_memory_store import InMemoryChatMemory
from .sqlite_store import SQLiteChatMemory

__all__ = ["ChatMemoryAdapter", "InMemoryChatMemory", "SQLiteChatMemory"]
