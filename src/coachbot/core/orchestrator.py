"""Orchestrator tying memory, prompt composition, usage and providers together."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

from ..providers.base import ProviderExhaustedError
from ..services.memory import ConversationMemory
from ..services.usage import UsageTracker
from .gateway import ProviderGateway
from .prompt import compose_prompt

logger = logging.getLogger(__name__)

NO_MESSAGE_REPLY = "沒有收到訊息。"
DEGRADED_REPLY = "目前 AI 模型發生錯誤，請稍後再試。"


class ResponseOrchestrator:
    """Produces one reply per user message and keeps the dialogue history."""

    def __init__(
        self,
        gateway: ProviderGateway,
        memory: Optional[ConversationMemory] = None,
        usage: Optional[UsageTracker] = None,
        persona: str = "",
        timezone: str = "Asia/Taipei",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        # The tier decision and the success count must read one counter
        gateway_usage = getattr(gateway, "usage", None)
        if not isinstance(gateway_usage, UsageTracker):
            gateway_usage = None
        if usage is not None and gateway_usage is not None and usage is not gateway_usage:
            raise ValueError("Orchestrator and gateway must share one UsageTracker")

        self.gateway = gateway
        self.memory = memory or ConversationMemory()
        self.usage = usage or gateway_usage or UsageTracker(timezone=timezone)
        self.gateway.usage = self.usage
        self.persona = persona
        self.timezone = timezone
        self._clock = clock

        self.replies = 0
        self.degraded = 0

    async def respond(
        self,
        user_message: Optional[str],
        images: Optional[Sequence[bytes]] = None,
        identity: Optional[str] = None,
        display_name: Optional[str] = None,
        grounding_context: Optional[str] = None,
    ) -> str:
        """Return the model reply, or a fixed fallback sentence; never raises."""
        if not user_message or not user_message.strip():
            return NO_MESSAGE_REPLY

        history = self.memory.get(identity) if identity else []
        prompt = compose_prompt(
            user_message,
            identity,
            display_name,
            history,
            grounding_context=grounding_context,
            now=self._clock() if self._clock else None,
            timezone=self.timezone,
        )
        reduced_tier = self.usage.should_use_reduced_tier()
        logger.debug(
            f"Prompt for {identity or 'anonymous'}: {len(prompt)} chars, "
            f"{len(history)} history turns, reduced tier: {reduced_tier}"
        )

        try:
            result = await self.gateway.generate(
                prompt,
                images=images,
                system_persona=self.persona or None,
                reduced_tier=reduced_tier,
            )
        except ProviderExhaustedError as e:
            self.degraded += 1
            logger.error(f"Returning degraded reply to {identity or 'anonymous'}: {e}")
            return DEGRADED_REPLY

        if identity:
            # Only the visible dialogue is stored; images and grounding are not
            self.memory.append(identity, user_message.strip(), result.text)
        self.replies += 1
        return result.text

    def get_stats(self) -> Dict[str, Any]:
        return {
            "replies": self.replies,
            "degraded": self.degraded,
            "gateway": self.gateway.get_stats(),
            "memory": self.memory.get_stats(),
            "usage": self.usage.get_stats(),
        }
