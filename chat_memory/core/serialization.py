"""
Message <-> row conversion.

``serialize_message`` flattens a langchain message into a ``ChatMemoryMessage``
row; ``deserialize_message`` rebuilds the message from the row. Both switch
explicitly on the kind tag.

Row metadata keys
-----------------
contentIsJson     content holds JSON text of a structured (non-string) value
additional_kwargs producer side-channel data (any kind)
toolCallId        tool messages, always written
toolStatus        tool messages
artifact          tool messages
toolMetadata      tool messages (``ToolMessage.response_metadata``)
toolCalls         AI messages
invalidToolCalls  AI messages
usageMetadata     AI messages
"""
from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional, Tuple

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from chat_memory.core.protocol import (
    BrowserStateMessage,
    ChatMemoryMessage,
    MessageType,
    TodoListMessage,
    get_message_type,
)

CONTENT_IS_JSON = "contentIsJson"
ADDITIONAL_KWARGS = "additional_kwargs"
TOOL_CALL_ID = "toolCallId"
TOOL_STATUS = "toolStatus"
ARTIFACT = "artifact"
TOOL_METADATA = "toolMetadata"
TOOL_CALLS = "toolCalls"
INVALID_TOOL_CALLS = "invalidToolCalls"
USAGE_METADATA = "usageMetadata"


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


# ── serialize ──────────────────────────────────────────────────────────────────

def serialize_message(
    message: BaseMessage,
    sequence: int,
    created_at: Optional[int] = None,
) -> ChatMemoryMessage:
    """Flatten *message* into the row stored at position *sequence*."""
    content, is_json = _normalize_content(message.content)
    metadata = _extract_metadata(message, is_json)
    return ChatMemoryMessage(
        role=get_message_type(message).value,
        content=content,
        sequence=sequence,
        created_at=created_at if created_at is not None else now_ms(),
        metadata=metadata,
    )


def _normalize_content(raw: Any) -> Tuple[str, bool]:
    """Return ``(content_text, is_json)`` for a message's content."""
    if isinstance(raw, str):
        return raw, False
    try:
        return json.dumps(raw), True
    except (TypeError, ValueError):
        return str(raw), False


def _extract_metadata(message: BaseMessage, content_is_json: bool) -> Optional[Dict[str, Any]]:
    metadata: Dict[str, Any] = {}

    if content_is_json:
        metadata[CONTENT_IS_JSON] = True

    if message.additional_kwargs:
        metadata[ADDITIONAL_KWARGS] = message.additional_kwargs

    if isinstance(message, ToolMessage):
        metadata[TOOL_CALL_ID] = message.tool_call_id
        if message.status:
            metadata[TOOL_STATUS] = message.status
        if message.artifact is not None:
            metadata[ARTIFACT] = message.artifact
        if message.response_metadata:
            metadata[TOOL_METADATA] = message.response_metadata

    if isinstance(message, AIMessage):
        if message.tool_calls:
            metadata[TOOL_CALLS] = [dict(call) for call in message.tool_calls]
        if message.invalid_tool_calls:
            metadata[INVALID_TOOL_CALLS] = [dict(call) for call in message.invalid_tool_calls]
        if message.usage_metadata:
            metadata[USAGE_METADATA] = dict(message.usage_metadata)

    return metadata or None


# ── deserialize ────────────────────────────────────────────────────────────────

def deserialize_message(record: ChatMemoryMessage) -> BaseMessage:
    """
    Rebuild a message from its stored row.

    Raises whatever the message constructors raise for content they do not
    accept (e.g. a JSON object as message content).
    """
    content = _restore_content(record)
    metadata = record.metadata or {}
    role = record.role

    extra = metadata.get(ADDITIONAL_KWARGS)
    extra = extra if isinstance(extra, dict) else {}

    if role == MessageType.SYSTEM.value:
        return SystemMessage(content=content, additional_kwargs=extra)

    if role == MessageType.HUMAN.value:
        return HumanMessage(content=content, additional_kwargs=extra)

    if role == MessageType.TOOL.value:
        tool_call_id = metadata.get(TOOL_CALL_ID)
        fields: Dict[str, Any] = {
            "content": content,
            "tool_call_id": tool_call_id if isinstance(tool_call_id, str) else "",
        }
        if isinstance(metadata.get(TOOL_STATUS), str):
            fields["status"] = metadata[TOOL_STATUS]
        if metadata.get(ARTIFACT) is not None:
            fields["artifact"] = metadata[ARTIFACT]
        if isinstance(metadata.get(TOOL_METADATA), dict):
            fields["response_metadata"] = metadata[TOOL_METADATA]
        if extra:
            fields["additional_kwargs"] = extra
        return ToolMessage(**fields)

    if role == MessageType.BROWSER_STATE.value:
        return BrowserStateMessage(content if isinstance(content, str) else json.dumps(content))

    if role == MessageType.TODO_LIST.value:
        return TodoListMessage(content if isinstance(content, str) else json.dumps(content))

    # "ai" and anything unrecognised
    fields = {"content": content}
    if isinstance(metadata.get(TOOL_CALLS), list):
        fields["tool_calls"] = metadata[TOOL_CALLS]
    if isinstance(metadata.get(INVALID_TOOL_CALLS), list):
        fields["invalid_tool_calls"] = metadata[INVALID_TOOL_CALLS]
    if extra:
        fields["additional_kwargs"] = extra
    if isinstance(metadata.get(USAGE_METADATA), dict):
        fields["usage_metadata"] = metadata[USAGE_METADATA]
    return AIMessage(**fields)


def _restore_content(record: ChatMemoryMessage) -> Any:
    if record.metadata and record.metadata.get(CONTENT_IS_JSON) and record.content:
        try:
            return json.loads(record.content)
        except json.JSONDecodeError:
            return record.content
    return record.content
