"""Middleware for logging and error handling."""

import logging
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware, Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, TelegramObject

from content_bot.bot.states import Step
from content_bot.config import get_config

logger = logging.getLogger(__name__)


def _describe(event: TelegramObject) -> tuple[int | None, str]:
    if isinstance(event, Message):
        text = event.text or event.caption or ""
        return (
            event.from_user.id if event.from_user else None,
            f"Content: {event.content_type} - {text[:100]}",
        )
    if isinstance(event, CallbackQuery):
        return event.from_user.id, f"Button: {event.data}"
    return None, type(event).__name__


class LoggingMiddleware(BaseMiddleware):
    """Middleware for logging user actions."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        """Log user action together with the current step."""
        user_id, description = _describe(event)
        current_step = "UNKNOWN"
        state: FSMContext | None = data.get("state")
        if state is not None:
            current_step = await state.get_state() or Step.IDLE.state

        logger.info(f"[USER {user_id}] [STEP: {current_step}] {description}")
        return await handler(event, data)


class ErrorHandlerMiddleware(BaseMiddleware):
    """Middleware for error handling and owner notifications."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        """Handle errors and notify owner."""
        try:
            return await handler(event, data)
        except Exception as e:
            logger.error(f"Error in handler: {e}", exc_info=True)
            bot: Bot | None = data.get("bot")
            user_id, description = _describe(event)

            if bot is not None and user_id is not None:
                try:
                    await bot.send_message(
                        chat_id=user_id,
                        text="❌ Something went wrong. Please try again or send /start to restart.",
                    )
                except TelegramAPIError as send_error:
                    logger.error(f"Failed to notify user {user_id}: {send_error}")

            owner_id = get_config().telegram.owner_id
            if bot is not None and owner_id is not None:
                try:
                    await bot.send_message(
                        chat_id=owner_id,
                        text=(
                            f"⚠️ Bot error:\n"
                            f"Type: {type(e).__name__}\n"
                            f"Message: {e}\n"
                            f"User: {user_id if user_id is not None else 'N/A'}\n"
                            f"Event: {description[:200]}"
                        ),
                    )
                except TelegramAPIError as notify_error:
                    logger.error(f"Failed to notify owner: {notify_error}")

            # Re-raise to let aiogram handle it
            raise
