"""OpenRouter LLM provider with an ordered model fallback list."""

import base64
import logging
from typing import Any, Optional, Sequence

from openai import OpenAI

from .base import (
    AuthenticationError,
    EmptyResponseError,
    LLMProvider,
    LLMProviderError,
    LLMResponse,
    ModelNotFoundError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(LLMProvider):
    """LLM provider using the OpenRouter API."""

    def __init__(
        self,
        api_key: Optional[str],
        models: Sequence[str] = ("openrouter/aurora-alpha",),
        timeout: float = 30.0,
        referrer: str = "https://github.com/coachbot",
        app_name: str = "coachbot",
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ):
        """Initialize the OpenRouter provider.

        Args:
            api_key: OpenRouter API key. The provider is unavailable without one.
            models: Models to try in order; duplicates are dropped.
            timeout: Per-request timeout in seconds.
            referrer: Value of the HTTP-Referer header OpenRouter attributes usage to.
            app_name: Application name for the X-Title header.
            max_tokens: Completion token limit.
            temperature: Sampling temperature.
        """
        self.api_key = api_key
        self.models = list(dict.fromkeys(m for m in models if m))
        self.timeout = timeout
        self.referrer = referrer
        self.app_name = app_name
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client: Optional[OpenAI] = None

    @property
    def name(self) -> str:
        return "openrouter"

    @property
    def client(self) -> OpenAI:
        """Get or create the OpenAI client configured for OpenRouter."""
        if self._client is None:
            if not self.api_key:
                raise AuthenticationError(
                    "OpenRouter API key not configured. "
                    "Set OPENROUTER_API_KEY environment variable.",
                    provider=self.name,
                )
            self._client = OpenAI(
                base_url=OPENROUTER_BASE_URL,
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self.referrer,
                    "X-Title": self.app_name,
                },
            )
        return self._client

    def build_messages(
        self,
        prompt: str,
        images: Optional[Sequence[bytes]] = None,
        system_instruction: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """System persona first, then the user turn with optional image parts."""
        messages: list[dict[str, Any]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})

        if images:
            content: Any = [{"type": "text", "text": prompt}]
            for image in images:
                encoded = base64.b64encode(image).decode("ascii")
                content.append(
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{encoded}"},
                    }
                )
        else:
            content = prompt
        messages.append({"role": "user", "content": content})
        return messages

    def generate_once(
        self,
        model: str,
        prompt: str,
        images: Optional[Sequence[bytes]] = None,
        system_instruction: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Call a single model.

        Raises:
            LLMProviderError: If the call fails or the content is empty.
        """
        logger.info(f"Generating with OpenRouter model: {model}")
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self.build_messages(prompt, images, system_instruction),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                **kwargs,
            )
        except LLMProviderError:
            raise
        except Exception as e:
            raise self._classify_error(e, model) from e

        content = ""
        if response.choices:
            content = (response.choices[0].message.content or "").strip()
        if not content:
            raise EmptyResponseError("empty content", provider=self.name, model=model)

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return LLMResponse(
            content=content,
            model=model,
            usage=usage,
            metadata={"id": response.id, "created": response.created},
        )

    def generate(
        self,
        prompt: str,
        images: Optional[Sequence[bytes]] = None,
        system_instruction: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Try each configured model in order until one answers.

        Raises:
            LLMProviderError: Naming the last failure once every model failed.
        """
        if not self.models:
            raise LLMProviderError("No OpenRouter models configured", provider=self.name)

        last_error: Optional[LLMProviderError] = None
        for model in self.models:
            try:
                response = self.generate_once(model, prompt, images, system_instruction, **kwargs)
                logger.info(f"OpenRouter response received from {model}")
                return response
            except LLMProviderError as e:
                logger.warning(f"OpenRouter model failed: {model} ({type(e).__name__}: {e})")
                last_error = e

        raise LLMProviderError(
            f"OpenRouter all models failed: model={last_error.model}, error={last_error}",
            provider=self.name,
            model=last_error.model,
        )

    def _classify_error(self, error: Exception, model: str) -> LLMProviderError:
        error_msg = str(error)
        status = getattr(error, "status_code", None)
        lowered = error_msg.lower()

        if status == 429 or "rate" in lowered or "429" in error_msg:
            return RateLimitError(error_msg, provider=self.name, model=model)
        if status in (401, 403) or "auth" in lowered or "401" in error_msg:
            return AuthenticationError(error_msg, provider=self.name, model=model)
        if status == 404 or "not found" in lowered or "404" in error_msg:
            return ModelNotFoundError(error_msg, provider=self.name, model=model)
        return LLMProviderError(
            error_msg,
            provider=self.name,
            model=model,
            is_retryable="timeout" in lowered,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
