"""
Chat Memory Protocol

Defines the message kinds kept in a conversation and the flat row format
used to store them.
"""

from typing import Any, Dict, Optional
from enum import Enum

from langchain_core.messages import AIMessage, BaseMessage
from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """Kinds of messages in a conversation"""
    SYSTEM = "system"
    HUMAN = "human"
    AI = "ai"
    TOOL = "tool"
    BROWSER_STATE = "browser_state"
    TODO_LIST = "todo_list"


# additional_kwargs key carrying the kind of the specialised AI-side messages
MESSAGE_TYPE_KEY = "messageType"


class BrowserStateMessage(AIMessage):
    """Snapshot of the browser state, kept as a single AI-side message."""

    def __init__(self, content: str, **kwargs: Any) -> None:
        additional_kwargs = dict(kwargs.pop("additional_kwargs", None) or {})
        additional_kwargs[MESSAGE_TYPE_KEY] = MessageType.BROWSER_STATE.value
        super().__init__(content=content, additional_kwargs=additional_kwargs, **kwargs)


class TodoListMessage(AIMessage):
    """Current todo list of the agent, kept as a single AI-side message."""

    def __init__(self, content: str, **kwargs: Any) -> None:
        additional_kwargs = dict(kwargs.pop("additional_kwargs", None) or {})
        additional_kwargs[MESSAGE_TYPE_KEY] = MessageType.TODO_LIST.value
        super().__init__(content=content, additional_kwargs=additional_kwargs, **kwargs)


_LANGCHAIN_TYPES = {
    "system": MessageType.SYSTEM,
    "human": MessageType.HUMAN,
    "ai": MessageType.AI,
    "tool": MessageType.TOOL,
}


def get_message_type(message: BaseMessage) -> MessageType:
    """
    Return the kind tag of *message*.

    The ``messageType`` marker wins over the langchain type so that browser
    state and todo list messages keep their own kind. Unknown langchain types
    (``chat``, ``function``, ...) are treated as AI messages.
    """
    marker = (message.additional_kwargs or {}).get(MESSAGE_TYPE_KEY)
    if marker == MessageType.BROWSER_STATE.value:
        return MessageType.BROWSER_STATE
    if marker == MessageType.TODO_LIST.value:
        return MessageType.TODO_LIST
    return _LANGCHAIN_TYPES.get(message.type, MessageType.AI)


class ChatMemoryMessage(BaseModel):
    """
    One stored message of a conversation.

    ``content`` is always a string; structured content is JSON-encoded and
    flagged with ``metadata["contentIsJson"]``.
    """
    role: str = Field(description="Message kind tag (see MessageType)")
    content: str = Field(description="Message content, JSON text when flagged")
    sequence: int = Field(ge=0, description="Zero-based position at the last write")
    created_at: Optional[int] = Field(None, description="Creation time in ms since epoch")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Kind-specific side data")

    model_config = {
        "json_schema_extra": {
            "example": {
                "role": "tool",
                "content": "[{\"type\": \"text\", \"text\": \"42\"}]",
                "sequence": 3,
                "created_at": 1760000000000,
                "metadata": {"contentIsJson": True, "toolCallId": "call_1"},
            }
        }
    }
