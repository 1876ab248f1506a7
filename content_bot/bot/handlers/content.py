"""Handlers for button presses and free text."""

import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message

from content_bot.bot.conversation import Conversation
from content_bot.bot.events import FreeText, event_from_callback

logger = logging.getLogger(__name__)

router = Router()


@router.callback_query()
async def handle_choice(callback: CallbackQuery, conversation: Conversation) -> None:
    """Handle platform/tone/service buttons and Done/Skip controls."""
    user_id = callback.from_user.id
    # Stop the loading indicator on the button
    await callback.answer()

    event = event_from_callback(user_id, callback.data or "")
    if event is None:
        logger.warning(f"[USER {user_id}] Malformed callback data: {callback.data!r}")
        await conversation.remind(user_id)
        return
    await conversation.handle(event)


@router.message(F.text)
async def handle_text(message: Message, conversation: Conversation) -> None:
    """Free text is only meaningful as additional context."""
    await conversation.handle(FreeText(user_id=message.from_user.id, text=message.text))


@router.message()
async def handle_other(message: Message, conversation: Conversation) -> None:
    """Stickers, voice and the like: remind the user what is expected."""
    logger.info(f"[USER {message.from_user.id}] Unsupported content: {message.content_type}")
    await conversation.remind(message.from_user.id)
