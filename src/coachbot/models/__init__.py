"""Data models for the coach bot."""

from .memory import MODEL_ROLE, USER_ROLE, ConversationTurn, MemoryEntry
from .reply import BotReply, GenerationResult, GroundingRecord, StructuredReply
from .schedule import ScheduleDocument, ScheduleGroup

__all__ = [
    "BotReply",
    "ConversationTurn",
    "GenerationResult",
    "GroundingRecord",
    "MemoryEntry",
    "MODEL_ROLE",
    "ScheduleDocument",
    "ScheduleGroup",
    "StructuredReply",
    "USER_ROLE",
]
