"""Gemini provider with a standard and a reduced model tier."""

import logging
from typing import Any, Optional, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

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

IMAGE_MIME_TYPE = "image/jpeg"


class GeminiProvider(LLMProvider):
    """LLM provider using the Google Generative AI SDK."""

    def __init__(
        self,
        api_key: Optional[str],
        standard_model: str = "gemini-2.5-flash",
        reduced_model: str = "gemini-2.5-flash-lite",
        timeout: float = 30.0,
    ):
        """Initialize the Gemini provider.

        Args:
            api_key: Gemini API key. The provider is unavailable without one.
            standard_model: Model used while daily usage is under the threshold.
            reduced_model: Cheaper model used once the threshold is reached.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.standard_model = standard_model
        self.reduced_model = reduced_model
        self.timeout = timeout
        if api_key:
            genai.configure(api_key=api_key)
            logger.info(
                f"Gemini provider configured (standard: {standard_model}, "
                f"reduced: {reduced_model})"
            )

    @property
    def name(self) -> str:
        return "gemini"

    def model_for_tier(self, reduced_tier: bool) -> str:
        return self.reduced_model if reduced_tier else self.standard_model

    def build_contents(self, prompt: str, images: Optional[Sequence[bytes]] = None) -> list:
        """Prompt text followed by one inline binary part per image."""
        contents: list = [prompt]
        for image in images or []:
            contents.append({"mime_type": IMAGE_MIME_TYPE, "data": image})
        return contents

    def generate(
        self,
        prompt: str,
        images: Optional[Sequence[bytes]] = None,
        system_instruction: Optional[str] = None,
        reduced_tier: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response with the tier-selected Gemini model.

        Raises:
            LLMProviderError: On any API failure or an empty answer.
        """
        from google.generativeai.types import RequestOptions

        model_name = self.model_for_tier(reduced_tier)
        logger.info(f"Generating with Gemini model: {model_name}")

        try:
            # Built per call so the persona is never cached on a model object
            model = genai.GenerativeModel(
                model_name, system_instruction=system_instruction or None
            )
            response = model.generate_content(
                self.build_contents(prompt, images),
                request_options=RequestOptions(timeout=self.timeout),
            )
            text = (response.text or "").strip()
        except google_exceptions.ResourceExhausted as e:
            raise RateLimitError(str(e), provider=self.name, model=model_name) from e
        except (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated) as e:
            raise AuthenticationError(str(e), provider=self.name, model=model_name) from e
        except google_exceptions.NotFound as e:
            raise ModelNotFoundError(str(e), provider=self.name, model=model_name) from e
        except ValueError as e:
            # response.text raises ValueError when the candidate was blocked
            raise EmptyResponseError(
                f"Gemini returned no text: {e}", provider=self.name, model=model_name
            ) from e
        except Exception as e:
            raise LLMProviderError(
                f"{type(e).__name__}: {e}",
                provider=self.name,
                model=model_name,
                is_retryable="500" in str(e) or "Internal" in str(e),
            ) from e

        if not text:
            raise EmptyResponseError("Gemini returned empty text", self.name, model_name)

        logger.debug(f"Gemini {model_name} responded with {len(text)} chars")
        return LLMResponse(content=text, model=model_name)

    def is_available(self) -> bool:
        return bool(self.api_key)
