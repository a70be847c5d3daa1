"""LLM providers for the coach bot."""

from .base import (
    AuthenticationError,
    EmptyResponseError,
    LLMProvider,
    LLMProviderError,
    LLMResponse,
    ModelNotFoundError,
    ProviderExhaustedError,
    RateLimitError,
)
from .gemini import GeminiProvider
from .openrouter import OpenRouterProvider

__all__ = [
    "AuthenticationError",
    "EmptyResponseError",
    "GeminiProvider",
    "LLMProvider",
    "LLMProviderError",
    "LLMResponse",
    "ModelNotFoundError",
    "OpenRouterProvider",
    "ProviderExhaustedError",
    "RateLimitError",
]
