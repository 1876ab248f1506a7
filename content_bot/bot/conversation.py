"""Guided conversation: photo → platform → tone → services → context → content."""

import html
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from aiogram.fsm.state import State
from aiogram.types import InlineKeyboardMarkup

from content_bot.bot.delivery import Delivery
from content_bot.bot.events import (
    ChoiceSelected,
    Command,
    ControlAction,
    Event,
    FreeText,
    PhotoReceived,
)
from content_bot.bot.keyboards import (
    context_keyboard,
    platform_keyboard,
    services_keyboard,
    tone_keyboard,
)
from content_bot.bot.states import GenerationParams, Step, UserState
from content_bot.bot.storage import StateStore
from content_bot.choices import (
    DONE_SERVICES,
    PLATFORM,
    PLATFORMS,
    SERVICE,
    SERVICES,
    SKIP_CONTEXT,
    TONE,
    TONES,
)
from content_bot.services.errors import GenerationError
from content_bot.services.gemini_client import GenerationResult

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Welcome to the ARSourcingBD Content Bot! 👋\n\n"
    "Please send me a <b>photo</b> of your product to get started. I will then guide you "
    "through a few questions to generate the perfect social media post."
)
CANCELLED_TEXT = "Your previous operation has been cancelled. Send a photo to start over."
UNKNOWN_COMMAND_TEXT = "I don't know that command. Send /start or a photo."

PLATFORM_PROMPT = "Great photo! 📸 Now, which <b>platform</b> is this for?"
TONE_PROMPT = "Got it. And what's the <b>tone</b> you're going for?"
SERVICES_PROMPT = (
    "Perfect. Which <b>services</b> should I highlight? (Select all that apply, then 'Done')"
)
CONTEXT_PROMPT = (
    "Last step! Any <b>additional context</b>? "
    "(e.g., 'This is for our new sustainable line.')\n\n"
    "Type your answer or press 'Skip'."
)

BAD_PHOTO_TEXT = "Sorry, I had trouble downloading your photo. Please try again."
BUSY_TEXT = "I'm still working on your previous photo. ⏳ Please wait, or /cancel to start over."
THINKING_TEXT = "Got it! ✨ Analyzing image and your requirements... This might take a moment."
FAILURE_TEXT = (
    "Oh no! I ran into an error: {error}\n\nPlease send the photo again to retry."
)
UNEXPECTED_FAILURE_TEXT = (
    "Oh no! Something went wrong while generating your content.\n\n"
    "Please send the photo again to retry."
)

STEP_HINTS: dict[State, str] = {
    Step.IDLE: (
        "I'm not sure what to do with that. 🤔\n\n"
        "Please send me a <b>photo</b> to start generating content, or /cancel to restart."
    ),
    Step.AWAITING_PLATFORM: "Please choose a <b>platform</b> using the buttons above, or /cancel to restart.",
    Step.AWAITING_TONE: "Please choose a <b>tone</b> using the buttons above, or /cancel to restart.",
    Step.AWAITING_SERVICES: (
        "Please select the <b>services</b> above and press 'Done', or /cancel to restart."
    ),
    Step.AWAITING_CONTEXT: "Type your additional context or press 'Skip', or /cancel to restart.",
}


class ContentGenerator(Protocol):
    async def generate_content(self, params: GenerationParams) -> GenerationResult: ...


@dataclass
class Effect:
    """Output of a state transition, carried out after the store lock is released."""

    cycle: int
    text: str | None = None
    prompt: str | None = None
    markup: InlineKeyboardMarkup | None = None
    prompt_ref: int | None = None  # prompt to edit in place; None sends a new one
    clear_ref: int | None = None
    generation: GenerationParams | None = None


Transition = Callable[[UserState, Event], Effect | None]


def _on_photo(state: UserState, event: PhotoReceived) -> Effect:
    if state.generating:
        return Effect(cycle=state.cycle, text=BUSY_TEXT)
    if not event.image:
        return Effect(cycle=state.cycle, text=BAD_PHOTO_TEXT)
    state.image = event.image
    state.mime_type = event.mime_type
    state.step = Step.AWAITING_PLATFORM
    return Effect(cycle=state.cycle, prompt=PLATFORM_PROMPT, markup=platform_keyboard())


def _on_platform(state: UserState, event: ChoiceSelected) -> Effect | None:
    if event.value not in PLATFORMS:
        return None
    state.platform = event.value
    state.step = Step.AWAITING_TONE
    return Effect(
        cycle=state.cycle,
        prompt=TONE_PROMPT,
        markup=tone_keyboard(),
        prompt_ref=state.pending_message_ref,
    )


def _on_tone(state: UserState, event: ChoiceSelected) -> Effect | None:
    if event.value not in TONES:
        return None
    state.tone = event.value
    state.step = Step.AWAITING_SERVICES
    return Effect(
        cycle=state.cycle,
        prompt=SERVICES_PROMPT,
        markup=services_keyboard(state.services),
        prompt_ref=state.pending_message_ref,
    )


def _on_service_toggle(state: UserState, event: ChoiceSelected) -> Effect:
    # Unknown keys only re-render the menu
    if event.value in SERVICES:
        state.toggle_service(event.value)
    return Effect(
        cycle=state.cycle,
        prompt=SERVICES_PROMPT,
        markup=services_keyboard(state.services),
        prompt_ref=state.pending_message_ref,
    )


def _on_services_done(state: UserState, event: ControlAction) -> Effect:
    state.step = Step.AWAITING_CONTEXT
    return Effect(
        cycle=state.cycle,
        prompt=CONTEXT_PROMPT,
        markup=context_keyboard(),
        prompt_ref=state.pending_message_ref,
    )


def _start_generation(state: UserState, context: str) -> Effect:
    state.context = context
    state.step = Step.IDLE
    state.generating = True
    clear_ref, state.pending_message_ref = state.pending_message_ref, None
    return Effect(
        cycle=state.cycle,
        clear_ref=clear_ref,
        generation=GenerationParams.from_state(state),
    )


def _on_context_text(state: UserState, event: FreeText) -> Effect:
    return _start_generation(state, event.text)


def _on_context_skip(state: UserState, event: ControlAction) -> Effect:
    return _start_generation(state, "")


# Keyed by event type too, so a choice category can never pose as a control action
TRANSITIONS: dict[tuple[State, type, str], Transition] = {
    (Step.IDLE, PhotoReceived, "photo"): _on_photo,
    (Step.AWAITING_PLATFORM, ChoiceSelected, PLATFORM): _on_platform,
    (Step.AWAITING_TONE, ChoiceSelected, TONE): _on_tone,
    (Step.AWAITING_SERVICES, ChoiceSelected, SERVICE): _on_service_toggle,
    (Step.AWAITING_SERVICES, ControlAction, DONE_SERVICES): _on_services_done,
    (Step.AWAITING_CONTEXT, FreeText, "text"): _on_context_text,
    (Step.AWAITING_CONTEXT, ControlAction, SKIP_CONTEXT): _on_context_skip,
}


def format_captions(result: GenerationResult) -> list[str]:
    """Render generation result as Telegram HTML messages."""
    messages = [
        f"<b>--- Option {i} ---</b>\n\n{html.escape(caption)}"
        for i, caption in enumerate(result.captions, 1)
    ]
    hashtags = " ".join(result.hashtags)
    messages.append(
        f"👇 <b>Suggested Hashtags</b> 👇\n<code>{html.escape(hashtags)}</code>\n\n"
        f"💡 <b>AI Image Feedback</b>\n<i>{html.escape(result.feedback)}</i>"
    )
    return messages


class Conversation:
    """Drives every user through the guided flow.

    State changes happen under the store lock; messages and Gemini calls
    happen after it is released, so each transition re-checks the step.
    """

    def __init__(self, store: StateStore, delivery: Delivery, generator: ContentGenerator):
        self.store = store
        self.delivery = delivery
        self.generator = generator

    async def handle(self, event: Event) -> None:
        if isinstance(event, Command):
            await self._on_command(event)
            return

        user_id = event.user_id
        async with self.store.edit(user_id) as state:
            step = state.step
            transition = TRANSITIONS.get((step, type(event), event.trigger))
            effect = transition(state, event) if transition else None

        if effect is None:
            logger.info(
                f"[USER {user_id}] [STEP: {step.state}] Rejected event: "
                f"{type(event).__name__} ({event.trigger})"
            )
            await self.delivery.send_text(user_id, STEP_HINTS[step])
            return

        logger.info(f"[USER {user_id}] [STEP: {step.state}] Accepted {event.trigger}")
        await self._apply(user_id, effect)

    async def remind(self, user_id: int) -> None:
        """Tell the user what the current step expects."""
        state = await self.store.get(user_id)
        await self.delivery.send_text(user_id, STEP_HINTS[state.step])

    async def _on_command(self, event: Command) -> None:
        user_id = event.user_id
        if event.name == "start":
            text = WELCOME_TEXT
        elif event.name == "cancel":
            text = CANCELLED_TEXT
        else:
            logger.info(f"[USER {user_id}] Unknown command: /{event.name}")
            await self.delivery.send_text(user_id, UNKNOWN_COMMAND_TEXT)
            return

        previous = await self.store.reset(user_id)
        logger.info(
            f"[USER {user_id}] [COMMAND: /{event.name}] State reset from {previous.step.state}"
        )
        await self.delivery.send_text(user_id, text)
        if previous.pending_message_ref is not None:
            await self.delivery.clear_prompt(user_id, previous.pending_message_ref)

    async def _apply(self, user_id: int, effect: Effect) -> None:
        if effect.text:
            await self.delivery.send_text(user_id, effect.text)

        if effect.prompt:
            if effect.prompt_ref is None:
                ref = await self.delivery.show_prompt(user_id, effect.prompt, effect.markup)
            else:
                ref = await self.delivery.replace_prompt(
                    user_id, effect.prompt_ref, effect.prompt, effect.markup
                )
            async with self.store.edit(user_id) as state:
                current = state.cycle == effect.cycle
                if current:
                    state.pending_message_ref = ref
            if not current and ref is not None:
                # Cancelled while the prompt was being sent
                await self.delivery.clear_prompt(user_id, ref)

        if effect.clear_ref is not None:
            await self.delivery.clear_prompt(user_id, effect.clear_ref)

        if effect.generation is not None:
            await self._generate(user_id, effect.generation, effect.cycle)

    async def _generate(self, user_id: int, params: GenerationParams, cycle: int) -> None:
        """Run generation outside the lock and deliver the result if still wanted."""
        logger.info(
            f"[USER {user_id}] Generating content: platform={params.platform}, "
            f"tone={params.tone}, services={list(params.services)}, "
            f"context={params.context[:50]!r}"
        )
        thinking_ref = await self.delivery.send_text(user_id, THINKING_TEXT)

        result: GenerationResult | None = None
        failure_text = ""
        try:
            result = await self.generator.generate_content(params)
        except GenerationError as e:
            logger.error(f"[USER {user_id}] Error generating content: {e}")
            failure_text = FAILURE_TEXT.format(error=html.escape(str(e)))
        except Exception as e:
            logger.error(f"[USER {user_id}] Unexpected generation error: {e}", exc_info=True)
            failure_text = UNEXPECTED_FAILURE_TEXT

        still_current = await self.store.reset_cycle(user_id, cycle)

        if thinking_ref is not None:
            await self.delivery.delete_message(user_id, thinking_ref)

        if not still_current:
            logger.info(f"[USER {user_id}] Cycle {cycle} was cancelled, result discarded")
            return

        if result is None:
            await self.delivery.send_text(user_id, failure_text)
            return

        for message in format_captions(result):
            await self.delivery.send_text(user_id, message)
        logger.info(
            f"[USER {user_id}] Delivered {len(result.captions)} captions "
            f"and {len(result.hashtags)} hashtags"
        )
