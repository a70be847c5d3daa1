"""Provider gateway: primary Gemini tier, then OpenRouter model fallbacks."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..models.reply import GenerationResult
from ..providers.base import LLMProvider, LLMResponse, ProviderExhaustedError
from ..services.usage import UsageTracker

logger = logging.getLogger(__name__)


class ProviderGateway:
    """Calls the primary provider once, then the secondary provider's models.

    Each provider call runs in a worker thread and is bounded by a timeout.
    A call that times out is abandoned; whatever it returns later is
    discarded and never counted.
    """

    def __init__(
        self,
        primary: Optional[LLMProvider] = None,
        secondary: Optional[LLMProvider] = None,
        usage: Optional[UsageTracker] = None,
        timeout: float = 30.0,
    ):
        self.primary = primary
        self.secondary = secondary
        self.usage = usage
        self.timeout = timeout

        # Statistics
        self.primary_calls = 0
        self.primary_failures = 0
        self.secondary_calls = 0
        self.secondary_failures = 0
        self.exhausted = 0

    def _secondary_budget(self) -> float:
        # Each model gets the full timeout
        models = getattr(self.secondary, "models", None)
        count = len(models) if isinstance(models, (list, tuple)) and models else 1
        return self.timeout * count

    async def _call(self, func: Callable[..., LLMResponse], budget: float, **kwargs: Any) -> LLMResponse:
        return await asyncio.wait_for(asyncio.to_thread(func, **kwargs), timeout=budget)

    async def generate(
        self,
        prompt: str,
        images: Optional[Sequence[bytes]] = None,
        system_persona: Optional[str] = None,
        reduced_tier: bool = False,
    ) -> GenerationResult:
        """Generate text from the first provider that answers.

        Raises:
            ProviderExhaustedError: If every configured candidate failed.
        """
        failures: List[str] = []
        images = list(images or [])

        if self.primary is not None and self.primary.is_available():
            self.primary_calls += 1
            try:
                response = await self._call(
                    self.primary.generate,
                    self.timeout,
                    prompt=prompt,
                    images=images,
                    system_instruction=system_persona,
                    reduced_tier=reduced_tier,
                )
                if self.usage is not None:
                    self.usage.record_primary_call()
                logger.debug(f"Primary provider answered with {response.model}")
                return GenerationResult(
                    text=response.content, provider=self.primary.name, model=response.model
                )
            except asyncio.TimeoutError:
                self.primary_failures += 1
                failures.append(f"{self.primary.name}: timed out after {self.timeout}s")
                logger.warning(f"Primary provider timed out after {self.timeout}s")
            except Exception as e:
                self.primary_failures += 1
                failures.append(f"{self.primary.name}: {type(e).__name__}: {e}")
                logger.warning(f"Primary provider failed: {type(e).__name__}: {e}")

        if self.secondary is not None and self.secondary.is_available():
            self.secondary_calls += 1
            budget = self._secondary_budget()
            try:
                response = await self._call(
                    self.secondary.generate,
                    budget,
                    prompt=prompt,
                    images=images,
                    system_instruction=system_persona,
                )
                logger.info(f"Secondary provider answered with {response.model}")
                return GenerationResult(
                    text=response.content, provider=self.secondary.name, model=response.model
                )
            except asyncio.TimeoutError:
                self.secondary_failures += 1
                failures.append(f"{self.secondary.name}: timed out after {budget}s")
                logger.warning(f"Secondary provider timed out after {budget}s")
            except Exception as e:
                self.secondary_failures += 1
                failures.append(f"{self.secondary.name}: {e}")
                logger.warning(f"Secondary provider failed: {e}")

        self.exhausted += 1
        if not failures:
            message = "No provider configured"
        else:
            message = f"All providers failed. Last error: {failures[-1]}"
        logger.error(message)
        raise ProviderExhaustedError(message, failures=failures)

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics for the gateway."""
        return {
            "primary": self.primary.name if self.primary else None,
            "secondary": self.secondary.name if self.secondary else None,
            "primary_calls": self.primary_calls,
            "primary_failures": self.primary_failures,
            "secondary_calls": self.secondary_calls,
            "secondary_failures": self.secondary_failures,
            "exhausted": self.exhausted,
            "timeout_seconds": self.timeout,
        }
