"""Prompt and request builders for Gemini."""

import logging
from dataclasses import dataclass

from google.genai import types

from content_bot.bot.states import GenerationParams

logger = logging.getLogger(__name__)

BUSINESS_NAME = "AR Sourcing Bangladesh"
BUSINESS_HANDLE = "arsourcingbd"

DEFAULT_SERVICES_PHRASE = "our full range of manufacturing services"
NO_CONTEXT_PHRASE = "None provided."
HASHTAG_COUNT = 15

PLATFORM_INSTRUCTIONS: dict[str, str] = {
    "Facebook": "Optimize for Facebook: Engaging, slightly longer, encourage comments. Emojis are good.",
    "Instagram": "Optimize for Instagram: Visually descriptive, strong hook. 3-5 relevant emojis.",
    "X": "Optimize for X (Twitter): Concise and punchy (under 280 chars). 2-3 key hashtags.",
    "LinkedIn": "Optimize for LinkedIn: Professional, formal, focus on business value. Minimal/no emojis.",
}
GENERIC_PLATFORM_INSTRUCTION = "Optimize for general social media."

CAPTIONS_USER_INSTRUCTION = (
    "Analyze this image and generate the B2B content as requested in the system prompt."
)
FEEDBACK_USER_INSTRUCTION = "What's your feedback on this product photo for B2B marketing?"

FEEDBACK_SYSTEM_PROMPT = (
    "You are a helpful B2B marketing assistant. Analyze the user's product image and "
    "provide a single, concise sentence of constructive feedback for its use on social "
    "media. Focus on lighting, angle, or professionalism. Be polite."
)

CAPTIONS_SYSTEM_PROMPT = """You are a professional B2B (business-to-business) marketing copywriter for **{business} ({handle})**, a high-quality clothing manufacturer. Your task is to analyze the provided image of a clothing product and generate compelling social media content.

**Business Identity:** {business} ({handle})
**Target Platform:** {platform} ({platform_instruction})
**Desired Tone:** {tone}
**Services to Highlight:** {services}
**Additional Context:** {context}

**Gold-Standard Example (Use for tone/style):**
---
Custom-Made for Global Brands
At {business}, we specialize in manufacturing high-quality women's shorts...
🧵 What We Offer:
✅ Premium fabric & professional stitching
✅ OEM & Private Label production
...
🌍 From Bangladesh to the world...
📩 Partner with us for your next clothing collection.
#ApparelManufacturer ... #ARsourcingBangladesh ...
---

**Your Task:**
Based on all the above, generate a JSON object with three (3) unique captions and a list of {hashtag_count} relevant hashtags.
- The captions must follow the style of the example, be tailored to the product image, and incorporate the specified platform, tone, and services.
- Mention "{business}" or "{handle}" in the captions.
- The hashtags should be a mix of general (#ApparelManufacturer), specific (#WomensShorts), and branded (#ARsourcingBangladesh).
"""

# Shape of the structured captions response
CAPTIONS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "caption1": types.Schema(type=types.Type.STRING),
        "caption2": types.Schema(type=types.Type.STRING),
        "caption3": types.Schema(type=types.Type.STRING),
        "hashtags": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        ),
    },
    required=["caption1", "caption2", "caption3", "hashtags"],
)


@dataclass(frozen=True)
class GenerationRequest:
    """One outbound call to Gemini."""

    contents: list[types.Content]
    system_instruction: str
    response_schema: types.Schema | None = None

    def to_config(self) -> types.GenerateContentConfig:
        """Build the generation config for this request."""
        if self.response_schema is None:
            return types.GenerateContentConfig(system_instruction=self.system_instruction)
        return types.GenerateContentConfig(
            system_instruction=self.system_instruction,
            response_mime_type="application/json",
            response_schema=self.response_schema,
        )


def build_platform_instruction(platform: str) -> str:
    """Get platform-specific copy guidance, generic for unknown platforms."""
    return PLATFORM_INSTRUCTIONS.get(platform, GENERIC_PLATFORM_INSTRUCTION)


def build_services_text(services: tuple[str, ...] | list[str]) -> str:
    """Join selected services or fall back to the default phrase."""
    if services:
        return ", ".join(services)
    return DEFAULT_SERVICES_PHRASE


def build_caption_system_prompt(
    platform: str,
    tone: str,
    services: tuple[str, ...] | list[str],
    context: str,
) -> str:
    """Build system prompt for caption and hashtag generation.

    Args:
        platform: Target platform (LinkedIn, Instagram, Facebook, X)
        tone: Desired tone
        services: Selected service keys, may be empty
        context: Free-text context, empty when skipped

    Returns:
        Formatted system prompt
    """
    return CAPTIONS_SYSTEM_PROMPT.format(
        business=BUSINESS_NAME,
        handle=BUSINESS_HANDLE,
        platform=platform,
        platform_instruction=build_platform_instruction(platform),
        tone=tone,
        services=build_services_text(services),
        context=context or NO_CONTEXT_PHRASE,
        hashtag_count=HASHTAG_COUNT,
    )


def _image_contents(instruction: str, image: bytes, mime_type: str) -> list[types.Content]:
    return [
        types.Content(
            role="user",
            parts=[
                types.Part.from_text(text=instruction),
                types.Part.from_bytes(data=image, mime_type=mime_type),
            ],
        )
    ]


def build_captions_request(params: GenerationParams) -> GenerationRequest:
    """Build the structured (JSON) request for captions and hashtags."""
    system_prompt = build_caption_system_prompt(
        params.platform, params.tone, params.services, params.context
    )
    logger.debug(f"Caption system prompt: {system_prompt[:200]}...")
    return GenerationRequest(
        contents=_image_contents(CAPTIONS_USER_INSTRUCTION, params.image, params.mime_type),
        system_instruction=system_prompt,
        response_schema=CAPTIONS_SCHEMA,
    )


def build_feedback_request(params: GenerationParams) -> GenerationRequest:
    """Build the plain-text request for photo feedback."""
    return GenerationRequest(
        contents=_image_contents(FEEDBACK_USER_INSTRUCTION, params.image, params.mime_type),
        system_instruction=FEEDBACK_SYSTEM_PROMPT,
    )
