"""Service components for the coach bot."""

from .image_batch import ImageBatcher, PendingBatch
from .memory import ConversationMemory
from .schedule_store import ScheduleStore
from .usage import UsageTracker

__all__ = [
    "ConversationMemory",
    "ImageBatcher",
    "PendingBatch",
    "ScheduleStore",
    "UsageTracker",
]
