"""
RAG Assistant - Chat Memory
============================
Bounded sliding window of conversation turns with an optional pinned
system message.

Rules:
    • Capacity is fixed at construction and includes the system message.
    • Appending past capacity evicts the oldest non-system message.
    • Appending a ``SystemMessage`` replaces the pinned one.
    • ``clear()`` removes everything, the system message included.
    • Every operation holds ``_lock``, so one instance can be shared by
      concurrent ``ask`` calls without interleaving corruption.
"""

from __future__ import annotations

import threading
from collections import deque

from langchain_core.messages import BaseMessage, SystemMessage

from ragassist.src.utils.logger import get_logger

logger = get_logger(__name__)


class ChatMemory:
    """
    Message-window memory.

    Parameters
    ----------
    max_messages
        Maximum number of messages held, pinned system message included.
    """

    __slots__ = ("_max_messages", "_system", "_messages", "_lock")

    def __init__(self, max_messages: int = 10) -> None:
        if max_messages < 1:
            raise ValueError(f"max_messages must be ≥ 1, got {max_messages}")
        self._max_messages = max_messages
        self._system: SystemMessage | None = None
        self._messages: deque[BaseMessage] = deque()
        self._lock = threading.Lock()

    @property
    def max_messages(self) -> int:
        return self._max_messages

    @property
    def system_message(self) -> SystemMessage | None:
        with self._lock:
            return self._system


    def append(self, message: BaseMessage) -> None:
        """Add *message*, evicting the oldest non-system messages if needed."""
        with self._lock:
            if isinstance(message, SystemMessage):
                self._system = message
            else:
                self._messages.append(message)
            self._evict()


    def set_system_message(self, text: str) -> None:
        """Clear everything and pin *text* as the new system message."""
        with self._lock:
            self._messages.clear()
            self._system = SystemMessage(content=text)


    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
            self._system = None


    def window(self) -> list[BaseMessage]:
        """Return the system message (if any) followed by the retained turns."""
        with self._lock:
            prefix: list[BaseMessage] = [self._system] if self._system is not None else []
            return prefix + list(self._messages)


    def __len__(self) -> int:
        with self._lock:
            return len(self._messages) + (1 if self._system is not None else 0)


    def _evict(self) -> None:
        capacity = self._max_messages - (1 if self._system is not None else 0)
        while len(self._messages) > max(capacity, 0):
            evicted = self._messages.popleft()
            logger.debug("[MEMORY] Evicted %s message (%d chars).", evicted.type, len(str(evicted.content)))


    def __repr__(self) -> str:
        return f"ChatMemory(max_messages={self._max_messages}, size={len(self)})"
