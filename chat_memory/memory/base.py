"""
ChatMemoryAdapter Abstract Class

Uniform storage capability behind the persistent message manager. Backends
must never raise out of these methods: failures are logged and surface as
``is_available() == False``, an empty read, or an unchanged store.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from chat_memory.core.protocol import ChatMemoryMessage


class ChatMemoryAdapter(ABC):
    """Storage backend for whole conversations."""

    @abstractmethod
    def initialize(self) -> None:
        """Acquire or create the backing store. Safe to call repeatedly."""

    @abstractmethod
    def is_available(self) -> bool:
        """True when the backend initialized and can be used."""

    @abstractmethod
    def replace_conversation(
        self,
        conversation_id: str,
        messages: Sequence[ChatMemoryMessage],
    ) -> None:
        """
        Atomically discard every stored row of *conversation_id* and store
        *messages* in the given order.
        """

    @abstractmethod
    def get_messages(self, conversation_id: str) -> List[ChatMemoryMessage]:
        """Rows of *conversation_id* ordered by sequence; ``[]`` if unknown."""

    @abstractmethod
    def clear_conversation(self, conversation_id: str) -> None:
        """Delete every row and the conversation record of *conversation_id*."""

    def close(self) -> None:
        """Release any held resources. The default backend holds none."""
