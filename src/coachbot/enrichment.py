"""Interface for external services that contribute grounding text."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


class GroundingSource(ABC):
    """A lookup (places search, activity links, weather) run before the prompt.

    Implementations live outside this package; they return an already
    formatted block or None when they have nothing for this message.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def lookup(self, text: str, identity: Optional[str]) -> Optional[str]:
        ...


async def collect_grounding(
    sources: Sequence[GroundingSource], text: str, identity: Optional[str]
) -> Optional[str]:
    """Run every source in order and join their blocks; failing sources are skipped."""
    blocks = []
    for source in sources:
        try:
            block = await source.lookup(text, identity)
        except Exception as e:
            logger.warning(f"Grounding source {source.name} failed: {type(e).__name__}: {e}")
            continue
        if block:
            blocks.append(block.strip())
    return "\n\n".join(blocks) or None
