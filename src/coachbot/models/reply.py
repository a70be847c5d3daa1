"""Reply models shared by the orchestrator, reconciler and bot router."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union


@dataclass
class GroundingRecord:
    """One recommended venue extracted from a structured model reply."""

    name: str
    rating: Union[str, int, float, None] = None
    price: Optional[str] = None
    highlight: Optional[str] = None
    map_url: Optional[str] = None


@dataclass
class StructuredReply:
    """Lead text plus the records parsed from the fenced block."""

    lead: Optional[str]
    records: List[GroundingRecord] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Raw text returned by the provider gateway."""

    text: str
    provider: str
    model: str


@dataclass
class BotReply:
    """What the bot hands back to the delivery layer for one event."""

    text: Optional[str] = None
    structured: Optional[StructuredReply] = None
    # (label, message text) pairs for quick-reply buttons
    quick_replies: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text and self.structured is None
