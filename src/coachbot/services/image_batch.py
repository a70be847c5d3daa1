"""Debounced collection of images a user sends in quick succession."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class PendingBatch:
    """Images and notes collected for one identity before the timer fires."""

    target_id: str
    display_name: Optional[str] = None
    images: List[bytes] = field(default_factory=list)
    texts: List[str] = field(default_factory=list)
    contexts: List[str] = field(default_factory=list)
    timer: Optional[asyncio.TimerHandle] = None

    def combined_prompt(self) -> str:
        prompt = f"請幫我分析這 {len(self.images)} 張圖。"
        if self.texts:
            prompt += "使用者說：\n" + "\n".join(self.texts)
        return prompt

    def combined_context(self) -> str:
        # Same directive repeated per image would confuse the model
        return "\n\n".join(dict.fromkeys(self.contexts))


FlushCallback = Callable[[str, PendingBatch], Awaitable[None]]


class ImageBatcher:
    """Holds one pending batch per identity and flushes it after a quiet period.

    Every new image resets the timer. The batch is removed from the pending
    map before the flush coroutine starts, so a later image opens a new batch
    instead of mutating the one being answered.
    """

    def __init__(self, flush: FlushCallback, delay_seconds: float = 1.5):
        self._flush = flush
        self.delay_seconds = delay_seconds
        self._pending: Dict[str, PendingBatch] = {}
        self._tasks: Set[asyncio.Task] = set()

    def add(
        self,
        identity: str,
        target_id: str,
        image: bytes,
        text: Optional[str] = None,
        context: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> int:
        """Queue an image; returns the number of images now pending."""
        loop = asyncio.get_running_loop()

        batch = self._pending.get(identity)
        if batch is None:
            batch = PendingBatch(target_id=target_id, display_name=display_name)
            self._pending[identity] = batch

        batch.images.append(image)
        if text:
            batch.texts.append(text)
        if context:
            batch.contexts.append(context)

        if batch.timer is not None:
            batch.timer.cancel()
        batch.timer = loop.call_later(self.delay_seconds, self._start_flush, identity)
        logger.debug(f"Image batch for {identity} now holds {len(batch.images)} images")
        return len(batch.images)

    def _start_flush(self, identity: str) -> None:
        batch = self._pending.pop(identity, None)
        if batch is None or not batch.images:
            return
        task = asyncio.get_running_loop().create_task(self._run_flush(identity, batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_flush(self, identity: str, batch: PendingBatch) -> None:
        logger.info(f"Flushing {len(batch.images)} images for {identity}")
        try:
            await self._flush(identity, batch)
        except Exception as e:
            logger.error(f"Image batch flush failed for {identity}: {e}", exc_info=True)

    def pending_count(self, identity: str) -> int:
        batch = self._pending.get(identity)
        return len(batch.images) if batch else 0

    async def wait_idle(self) -> None:
        """Wait for flushes already in progress to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def cancel_all(self) -> None:
        """Drop every pending batch without flushing it."""
        for batch in self._pending.values():
            if batch.timer is not None:
                batch.timer.cancel()
        self._pending.clear()
