"""Message model, in-memory pipeline and row serialization"""

from .protocol import (
    MessageType,
    BrowserStateMessage,
    TodoListMessage,
    ChatMemoryMessage,
    get_message_type,
)
from .message_manager import MessageManager
from .serialization import serialize_message, deserialize_message

__all__ = [
    "MessageType",
    "BrowserStateMessage",
    "TodoListMessage",
    "ChatMemoryMessage",
    "get_message_type",
    "MessageManager",
    # Row protocol
    "serialize_message",
    "deserialize_message",
]
