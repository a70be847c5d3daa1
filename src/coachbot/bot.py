"""Routes inbound chat events to the schedule parser or the AI pipeline."""

import logging
import os
from typing import Awaitable, Callable, Optional, Sequence

from .config import BotConfig
from .core.gateway import ProviderGateway
from .core.orchestrator import NO_MESSAGE_REPLY, ResponseOrchestrator
from .core.reconciler import reconcile
from .enrichment import GroundingSource, collect_grounding
from .models.reply import BotReply
from .prompts import IGNORE_MARKER, build_image_context, build_location_prompt
from .providers.gemini import GeminiProvider
from .providers.openrouter import OpenRouterProvider
from .schedule.formatter import format_document_summary, format_group, group_choices
from .schedule.parser import is_group_selection, is_schedule_like, parse_schedule
from .services.image_batch import ImageBatcher, PendingBatch
from .services.memory import ConversationMemory
from .services.schedule_store import ScheduleStore
from .services.usage import UsageTracker

logger = logging.getLogger(__name__)

STICKER_REPLY = "貼圖好可愛！但我不懂貼圖的意思哦～"
NO_SCHEDULE_REPLY = "目前還沒有課表喔，請先貼上本週的訓練課表。"
GROUP_NOT_FOUND_REPLY = "{week} 的全馬組課表裡找不到 {letter} 組的間歇資料。"
SCHEDULE_PARSED_REPLY = "📅 已讀取 {week} 全馬組課表，共 {count} 組。請選擇你的組別："
SCHEDULE_NOT_CACHED_NOTE = "\n(課表中沒有日期區間，之後無法用組別指令查詢)"

USAGE_COMMANDS = ("用量", "/usage")
SCHEDULE_KEYWORD = "課表"
DEFAULT_TRIGGER_KEYWORDS = ("教練", "Stuart", "史都華")

PushCallback = Callable[[str, BotReply], Awaitable[None]]


class CoachBot:
    """Entry point for one message event, independent of the chat platform."""

    def __init__(
        self,
        orchestrator: ResponseOrchestrator,
        schedules: Optional[ScheduleStore] = None,
        push: Optional[PushCallback] = None,
        grounding_sources: Sequence[GroundingSource] = (),
        image_batch_delay: float = 1.5,
        trigger_keywords: Sequence[str] = DEFAULT_TRIGGER_KEYWORDS,
    ):
        self.orchestrator = orchestrator
        self.schedules = schedules or ScheduleStore()
        self.push = push
        self.grounding_sources = list(grounding_sources)
        self.trigger_keywords = tuple(trigger_keywords)
        self.batcher = ImageBatcher(self._flush_images, delay_seconds=image_batch_delay)

    @staticmethod
    def to_reply(raw: str) -> BotReply:
        """Structured records when the reply carries a valid block, else plain text."""
        structured = reconcile(raw)
        if structured is not None:
            return BotReply(structured=structured)
        return BotReply(text=raw)

    async def handle_text(
        self,
        text: Optional[str],
        identity: Optional[str] = None,
        source_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> BotReply:
        text = (text or "").strip()
        if not text:
            return BotReply(text=NO_MESSAGE_REPLY)
        source_id = source_id or identity

        if text in USAGE_COMMANDS:
            return BotReply(text=self.orchestrator.usage.status_report())

        letter = is_group_selection(text)
        if letter:
            return self._select_group(letter, source_id)

        if is_schedule_like(text):
            document = parse_schedule(text)
            if document is not None:
                cached = self.schedules.put(source_id, document)
                reply_text = SCHEDULE_PARSED_REPLY.format(
                    week=document.week_label, count=len(document.groups)
                )
                if not cached:
                    reply_text += SCHEDULE_NOT_CACHED_NOTE
                return BotReply(text=reply_text, quick_replies=group_choices(document))
            logger.info("Schedule-like message produced no groups, answering as chat")

        grounding = await collect_grounding(self.grounding_sources, text, identity)
        if SCHEDULE_KEYWORD in text:
            this_week = self.schedules.get_for_date(source_id)
            if this_week is not None:
                summary = format_document_summary(this_week)
                grounding = f"{summary}\n\n{grounding}" if grounding else summary

        raw = await self.orchestrator.respond(
            text,
            identity=identity,
            display_name=display_name,
            grounding_context=grounding,
        )
        return self.to_reply(raw)

    def _select_group(self, letter: str, source_id: Optional[str]) -> BotReply:
        document = self.schedules.get_latest(source_id)
        if document is None:
            return BotReply(text=NO_SCHEDULE_REPLY)
        formatted = format_group(document, letter)
        if formatted is None:
            return BotReply(
                text=GROUP_NOT_FOUND_REPLY.format(week=document.week_label, letter=letter),
                quick_replies=group_choices(document),
            )
        return BotReply(text=formatted)

    async def handle_location(
        self,
        title: Optional[str],
        address: Optional[str],
        identity: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> BotReply:
        prompt = build_location_prompt(title, address)
        grounding = await collect_grounding(self.grounding_sources, prompt, identity)
        raw = await self.orchestrator.respond(
            prompt, identity=identity, display_name=display_name, grounding_context=grounding
        )
        return self.to_reply(raw)

    def handle_sticker(self) -> BotReply:
        return BotReply(text=STICKER_REPLY)

    async def handle_image(
        self,
        image: bytes,
        identity: str,
        target_id: Optional[str] = None,
        text: Optional[str] = None,
        display_name: Optional[str] = None,
        is_group_chat: bool = False,
    ) -> int:
        """Queue an image; the reply is pushed once the batch is flushed."""
        is_triggered = bool(text) and any(k in text for k in self.trigger_keywords)
        venue_grounding = None
        if text:
            venue_grounding = await collect_grounding(self.grounding_sources, text, identity)
        context = build_image_context(text, is_triggered, is_group_chat, venue_grounding)
        return self.batcher.add(
            identity,
            target_id or identity,
            image,
            text=text,
            context=context,
            display_name=display_name,
        )

    async def _flush_images(self, identity: str, batch: PendingBatch) -> None:
        raw = await self.orchestrator.respond(
            batch.combined_prompt(),
            images=batch.images,
            identity=identity,
            display_name=batch.display_name,
            grounding_context=batch.combined_context() or None,
        )
        if raw.strip() == IGNORE_MARKER:
            logger.info(f"Model ignored an unrelated image batch from {identity}")
            return
        if self.push is None:
            logger.warning(f"No push callback configured, dropping image reply for {identity}")
            return
        await self.push(batch.target_id, self.to_reply(raw))


def build_bot(
    config: BotConfig,
    push: Optional[PushCallback] = None,
    grounding_sources: Sequence[GroundingSource] = (),
) -> CoachBot:
    """Wire every component from configuration."""
    usage = UsageTracker(
        threshold=config.daily_threshold, cap=config.daily_cap, timezone=config.timezone
    )
    gateway = ProviderGateway(
        primary=GeminiProvider(
            config.gemini_api_key,
            standard_model=config.gemini_standard_model,
            reduced_model=config.gemini_reduced_model,
            timeout=config.timeout_seconds,
        ),
        secondary=OpenRouterProvider(
            config.openrouter_api_key,
            models=config.openrouter_models,
            timeout=config.timeout_seconds,
            referrer=config.openrouter_referrer,
        ),
        usage=usage,
        timeout=config.timeout_seconds,
    )
    orchestrator = ResponseOrchestrator(
        gateway,
        memory=ConversationMemory(
            max_turns=config.history_length, ttl_seconds=config.history_ttl_seconds
        ),
        usage=usage,
        persona=config.persona,
        timezone=config.timezone,
    )
    schedule_path = os.path.join(config.data_dir, "schedules.json") if config.data_dir else None
    schedules = ScheduleStore(path=schedule_path, timezone=config.timezone)
    logger.info(
        f"Bot ready (gemini: {gateway.primary.is_available()}, "
        f"openrouter: {gateway.secondary.is_available()}, "
        f"schedule persistence: {bool(schedule_path)})"
    )
    return CoachBot(
        orchestrator,
        schedules=schedules,
        push=push,
        grounding_sources=grounding_sources,
        image_batch_delay=config.image_batch_delay_seconds,
    )
