"""Persistent chat memory for agent conversations."""
from .config import ChatMemoryConfig
from .core import (
    BrowserStateMessage,
    ChatMemoryMessage,
    MessageManager,
    MessageType,
    TodoListMessage,
)
from .memory import ChatMemoryAdapter, InMemoryChatMemory, SQLiteChatMemory
from .core.persistent_manager import ManagerMode, PersistentMessageManager

__version__ = "1.0.0"

__all__ = [
    "ChatMemoryConfig",
    "BrowserStateMessage",
    "ChatMemoryMessage",
    "MessageManager",
    "MessageType",
    "TodoListMessage",
    "ChatMemoryAdapter",
    "InMemoryChatMemory",
    "SQLiteChatMemory",
    "ManagerMode",
    "PersistentMessageManager",
]
