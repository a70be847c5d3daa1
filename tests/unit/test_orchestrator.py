"""Tests for the response orchestrator."""

from datetime import datetime
from unittest.mock import AsyncMock, Mock, patch

import pytest

from coachbot.core.gateway import ProviderGateway
from coachbot.core.orchestrator import DEGRADED_REPLY, NO_MESSAGE_REPLY, ResponseOrchestrator
from coachbot.models.reply import GenerationResult
from coachbot.providers.base import ProviderExhaustedError
from coachbot.services.memory import ConversationMemory
from coachbot.services.usage import UsageTracker
from tests.fixtures import FakeProvider, failing_provider

FIXED_NOW = datetime(2025, 2, 27, 9, 30)


def make_orchestrator(gateway, **kwargs):
    usage = kwargs.pop("usage", None) or UsageTracker(
        threshold=2, cap=3, clock=lambda: FIXED_NOW
    )
    return ResponseOrchestrator(gateway, usage=usage, clock=lambda: FIXED_NOW, **kwargs)


class TestResponseOrchestrator:
    """Test the ResponseOrchestrator class."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", None])
    async def test_empty_message(self, message):
        """Test that an empty message never reaches prompt composition or providers."""
        gateway = Mock()
        gateway.generate = AsyncMock()
        orchestrator = make_orchestrator(gateway)

        with patch("coachbot.core.orchestrator.compose_prompt") as mock_compose:
            reply = await orchestrator.respond(message, identity="U1")

        assert reply == NO_MESSAGE_REPLY
        mock_compose.assert_not_called()
        gateway.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_reply_is_remembered(self):
        primary = FakeProvider(name="gemini", reply="Run easy today.")
        orchestrator = make_orchestrator(ProviderGateway(primary), persona="You are a coach")

        reply = await orchestrator.respond("  What should I run?  ", identity="U1")

        assert reply == "Run easy today."
        turns = orchestrator.memory.get("U1")
        assert [t.content for t in turns] == ["What should I run?", "Run easy today."]
        assert primary.calls[0]["system_instruction"] == "You are a coach"

    @pytest.mark.asyncio
    async def test_history_included_in_next_prompt(self):
        primary = FakeProvider(name="gemini", reply="answer")
        orchestrator = make_orchestrator(ProviderGateway(primary))

        await orchestrator.respond("first question", identity="U1")
        await orchestrator.respond("second question", identity="U1")

        second_prompt = primary.calls[1]["prompt"]
        assert "我：first question" in second_prompt
        assert "你：answer" in second_prompt

    @pytest.mark.asyncio
    async def test_grounding_not_stored(self):
        primary = FakeProvider(name="gemini", reply="answer")
        orchestrator = make_orchestrator(ProviderGateway(primary))

        await orchestrator.respond("吃什麼", identity="U1", grounding_context="餐廳清單")

        assert "餐廳清單" in primary.calls[0]["prompt"]
        assert all("餐廳清單" not in t.content for t in orchestrator.memory.get("U1"))

    @pytest.mark.asyncio
    async def test_anonymous_request_not_remembered(self):
        orchestrator = make_orchestrator(ProviderGateway(FakeProvider(name="gemini")))
        await orchestrator.respond("hi")
        assert orchestrator.memory.get_stats()["identities"] == 0

    @pytest.mark.asyncio
    async def test_degraded_reply_leaves_memory_untouched(self):
        gateway = ProviderGateway(failing_provider("gemini"), failing_provider("openrouter"))
        memory = ConversationMemory()
        memory.append("U1", "earlier", "earlier reply")
        orchestrator = make_orchestrator(gateway, memory=memory)

        reply = await orchestrator.respond("hello", identity="U1")

        assert reply == DEGRADED_REPLY
        assert [t.content for t in memory.get("U1")] == ["earlier", "earlier reply"]
        assert orchestrator.degraded == 1

    @pytest.mark.asyncio
    async def test_reduced_tier_after_threshold(self):
        primary = FakeProvider(name="gemini", reply="ok")
        usage = UsageTracker(threshold=2, cap=3, clock=lambda: FIXED_NOW)
        orchestrator = make_orchestrator(ProviderGateway(primary, usage=usage), usage=usage)

        for _ in range(3):
            await orchestrator.respond("hi")

        assert [c["reduced_tier"] for c in primary.calls] == [False, False, True]

    @pytest.mark.asyncio
    async def test_gateway_arguments(self):
        gateway = Mock()
        gateway.generate = AsyncMock(return_value=GenerationResult("ok", "gemini", "m"))
        orchestrator = make_orchestrator(gateway)

        await orchestrator.respond("look", images=[b"img"], identity="U1", display_name="小明")

        args, kwargs = gateway.generate.call_args
        assert "「小明」" in args[0]
        assert kwargs == {"images": [b"img"], "system_persona": None, "reduced_tier": False}

    @pytest.mark.asyncio
    async def test_exhausted_error_is_caught(self):
        gateway = Mock()
        gateway.generate = AsyncMock(side_effect=ProviderExhaustedError("nope"))
        assert await make_orchestrator(gateway).respond("hi") == DEGRADED_REPLY

    @pytest.mark.asyncio
    async def test_get_stats(self):
        orchestrator = make_orchestrator(ProviderGateway(FakeProvider(name="gemini")))
        await orchestrator.respond("hi", identity="U1")

        stats = orchestrator.get_stats()
        assert stats["replies"] == 1
        assert stats["degraded"] == 0
        assert stats["memory"]["identities"] == 1
        assert stats["usage"]["primary_count"] == 1
        assert stats["gateway"]["primary_calls"] == 1


class TestSharedUsage:
    """Test that the tier decision and the gateway count use one tracker."""

    @pytest.mark.asyncio
    async def test_gateway_tracker_drives_tier(self):
        primary = FakeProvider(name="gemini", reply="ok")
        usage = UsageTracker(threshold=2, cap=3, clock=lambda: FIXED_NOW)
        orchestrator = ResponseOrchestrator(
            ProviderGateway(primary, usage=usage), clock=lambda: FIXED_NOW
        )

        for _ in range(3):
            await orchestrator.respond("hi")

        assert orchestrator.usage is usage
        assert [c["reduced_tier"] for c in primary.calls] == [False, False, True]
        assert usage.get_stats()["primary_count"] == 3

    def test_orchestrator_tracker_handed_to_gateway(self):
        gateway = ProviderGateway(FakeProvider(name="gemini"))
        usage = UsageTracker(clock=lambda: FIXED_NOW)

        orchestrator = ResponseOrchestrator(gateway, usage=usage)

        assert gateway.usage is usage
        assert orchestrator.usage is usage

    def test_default_tracker_is_shared(self):
        gateway = ProviderGateway(FakeProvider(name="gemini"))
        orchestrator = ResponseOrchestrator(gateway)
        assert gateway.usage is orchestrator.usage

    def test_two_trackers_rejected(self):
        gateway = ProviderGateway(FakeProvider(name="gemini"), usage=UsageTracker())
        with pytest.raises(ValueError, match="share one UsageTracker"):
            ResponseOrchestrator(gateway, usage=UsageTracker())
