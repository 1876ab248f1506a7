"""Google Gemini client for caption, hashtag and feedback generation."""

import asyncio
import logging
from dataclasses import dataclass

import httpx
from google import genai
from google.genai import errors, types
from pydantic import BaseModel, ValidationError

from content_bot.bot.states import GenerationParams
from content_bot.config import GeminiConfig, get_config
from content_bot.services.errors import (
    BlockedPromptError,
    EmptyResponseError,
    GenerationError,
    MalformedOutputError,
)
from content_bot.utils.prompt_builder import (
    GenerationRequest,
    build_captions_request,
    build_feedback_request,
)

logger = logging.getLogger(__name__)

FEEDBACK_FALLBACK = "Could not generate AI feedback at this time."


class CaptionsPayload(BaseModel):
    """Structured output of the captions call."""

    caption1: str
    caption2: str
    caption3: str
    hashtags: list[str]


@dataclass
class GenerationResult:
    """Final content shown to the user."""

    captions: list[str]
    hashtags: list[str]
    feedback: str


class GeminiClient:
    """Client for Google Gemini API."""

    def __init__(self, config: GeminiConfig | None = None, client: genai.Client | None = None):
        """Initialize Gemini client.

        Args:
            config: Gemini configuration. If None, uses global config.
            client: Preconfigured SDK client, mostly for tests.
        """
        self.config = config or get_config().gemini
        self.client = client or genai.Client(
            api_key=self.config.api_key,
            http_options=types.HttpOptions(timeout=self.config.timeout * 1000),
        )
        logger.info(f"Gemini Client initialized: model={self.config.model}")

    async def generate_text(self, request: GenerationRequest) -> str:
        """Perform a single generateContent call and return the first text part.

        No retries: every failure is reported to the caller.

        Raises:
            GenerationError: On transport error or non-success status
            BlockedPromptError: If the provider blocked the prompt
            EmptyResponseError: If the response carries no text
        """
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, self._generate_sync, request)
        except errors.APIError as e:
            logger.error(f"Gemini API error response body: {e.details}")
            raise GenerationError(f"API request failed with status {e.code}: {e.details}") from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {type(e).__name__}: {e}")
            raise GenerationError(f"error making API request: {e}") from e

        feedback = response.prompt_feedback
        if feedback is not None and feedback.block_reason:
            reason = getattr(feedback.block_reason, "value", feedback.block_reason)
            logger.warning(f"Gemini blocked the prompt: {reason}")
            raise BlockedPromptError(str(reason))

        if response.candidates:
            content = response.candidates[0].content
            if content is not None and content.parts and content.parts[0].text:
                return content.parts[0].text

        raise EmptyResponseError()

    def _generate_sync(self, request: GenerationRequest) -> types.GenerateContentResponse:
        """Generate content (synchronous)."""
        return self.client.models.generate_content(
            model=self.config.model,
            contents=request.contents,
            config=request.to_config(),
        )

    async def generate_captions(self, params: GenerationParams) -> CaptionsPayload:
        """Generate three captions and a hashtag list (JSON mode).

        Raises:
            GenerationError: On any failure, including malformed JSON output
        """
        logger.info("Generating captions and hashtags...")
        raw_text = await self.generate_text(build_captions_request(params))
        try:
            return CaptionsPayload.model_validate_json(raw_text)
        except ValidationError as e:
            logger.error(f"Failed to parse captions JSON: {raw_text}")
            raise MalformedOutputError(raw_text, str(e)) from e

    async def generate_feedback(self, params: GenerationParams) -> str:
        """Generate one sentence of photo feedback, falling back on failure."""
        logger.info("Generating AI feedback...")
        try:
            return (await self.generate_text(build_feedback_request(params))).strip()
        except GenerationError as e:
            logger.warning(f"Could not generate AI feedback: {e}")
            return FEEDBACK_FALLBACK
        except Exception as e:
            # Feedback is optional: never lose the captions over it
            logger.warning(f"Unexpected error generating AI feedback: {e}", exc_info=True)
            return FEEDBACK_FALLBACK

    async def generate_content(self, params: GenerationParams) -> GenerationResult:
        """Run the captions call and, only if it succeeds, the feedback call.

        Raises:
            GenerationError: If the captions call fails
        """
        captions = await self.generate_captions(params)
        feedback = await self.generate_feedback(params)
        return GenerationResult(
            captions=[captions.caption1, captions.caption2, captions.caption3],
            hashtags=list(captions.hashtags),
            feedback=feedback or FEEDBACK_FALLBACK,
        )


# Singleton instance
_gemini_client: GeminiClient | None = None


def get_gemini_client() -> GeminiClient:
    """Get Gemini client singleton instance."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
