"""Shared fixtures for the coachbot tests."""

from typing import Any, List, Optional
from unittest.mock import Mock

from coachbot.providers.base import LLMProvider, LLMProviderError, LLMResponse

SAMPLE_SCHEDULE = """🏃‍♂️ 訓練週期 Week 9  02/23 - 03/01
週四 間歇課表，記得提早到場

全馬組
S SUB 2:50
warm up 3K freejog
1200 x 6~8 @03:50~03:45/km R: 90"

A SUB 3:00
warm up 3K freejog
1200 x 6 @04:05~04:00/km R: 90"

B SUB 3:15
warm up 3K
800 x 8 @04:!5~04:10/km R：2’

半馬組
C SUB 1:30
800 x 10 @03:55/km R: 60"
"""

# Same period, different prescription for group A
SAMPLE_SCHEDULE_REVISED = SAMPLE_SCHEDULE.replace(
    "1200 x 6 @04:05~04:00/km", "1200 x 5 @04:00/km"
)


class FakeProvider(LLMProvider):
    """Synchronous provider returning canned replies or raising."""

    def __init__(
        self,
        name: str = "fake",
        reply: str = "Test response",
        error: Optional[Exception] = None,
        available: bool = True,
    ):
        self._name = name
        self.reply = reply
        self.error = error
        self.available = available
        self.calls: List[dict] = []

    @property
    def name(self) -> str:
        return self._name

    def generate(self, prompt, images=None, system_instruction=None, **kwargs: Any) -> LLMResponse:
        self.calls.append(
            {
                "prompt": prompt,
                "images": images,
                "system_instruction": system_instruction,
                **kwargs,
            }
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.reply, model=f"{self._name}-model")

    def is_available(self) -> bool:
        return self.available


def failing_provider(name: str = "broken", message: str = "boom") -> FakeProvider:
    return FakeProvider(name=name, error=LLMProviderError(message, provider=name))


def create_mock_completion(content: Optional[str], model: str = "test-model") -> Mock:
    """Build an object shaped like an OpenAI chat completion."""
    response = Mock()
    response.id = "gen-123"
    response.created = 1700000000
    response.choices = [Mock(message=Mock(content=content))]
    response.usage = Mock(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    return response
