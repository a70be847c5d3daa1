"""Memory-related data models."""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque

USER_ROLE = "user"
MODEL_ROLE = "model"


@dataclass(frozen=True)
class ConversationTurn:
    """Represents a single turn in a conversation."""

    role: str  # "user" or "model"
    content: str


@dataclass
class MemoryEntry:
    """Bounded dialogue history for one identity."""

    turns: Deque[ConversationTurn] = field(default_factory=deque)
    last_updated: float = field(default_factory=time.time)
