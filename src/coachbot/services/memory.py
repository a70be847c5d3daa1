"""Memory service for per-identity conversation context."""

import logging
import time
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from ..models.memory import MODEL_ROLE, USER_ROLE, ConversationTurn, MemoryEntry

logger = logging.getLogger(__name__)


class ConversationMemory:
    """Short-lived, bounded dialogue history keyed by identity.

    Expired entries are deleted lazily when read. Two in-flight exchanges for
    the same identity may race; the last one to append wins.
    """

    def __init__(
        self,
        max_turns: int = 6,
        ttl_seconds: float = 30 * 60,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_turns = max_turns
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self.entries: Dict[str, MemoryEntry] = {}

    def _is_expired(self, entry: MemoryEntry) -> bool:
        return self._clock() - entry.last_updated > self.ttl_seconds

    def get(self, identity: str) -> List[ConversationTurn]:
        """Get the retained turns for an identity, oldest first."""
        entry = self.entries.get(identity)
        if entry is None:
            return []
        if self._is_expired(entry):
            logger.debug(f"History for {identity} expired")
            del self.entries[identity]
            return []
        return list(entry.turns)

    def append(self, identity: str, user_content: str, model_content: str) -> None:
        """Record one exchange; the bounded deque drops the oldest turns."""
        entry = self.entries.get(identity)
        if entry is None or self._is_expired(entry):
            entry = MemoryEntry(turns=deque(maxlen=self.max_turns))
            self.entries[identity] = entry

        entry.turns.append(ConversationTurn(role=USER_ROLE, content=user_content))
        entry.turns.append(ConversationTurn(role=MODEL_ROLE, content=model_content))
        entry.last_updated = self._clock()

    def clear(self, identity: Optional[str] = None) -> None:
        """Evict one identity, or everything when no identity is given."""
        if identity is None:
            self.entries.clear()
        else:
            self.entries.pop(identity, None)

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        expired = [k for k, e in self.entries.items() if self._is_expired(e)]
        for key in expired:
            del self.entries[key]
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        """Get memory usage statistics."""
        return {
            "identities": len(self.entries),
            "turns_count": sum(len(e.turns) for e in self.entries.values()),
            "max_turns": self.max_turns,
            "ttl_seconds": self.ttl_seconds,
        }
