"""Outbound message delivery to Telegram."""

import logging
from typing import Protocol

from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup

logger = logging.getLogger(__name__)


class Delivery(Protocol):
    """What the conversation needs from the chat transport.

    Message references are Telegram message ids; None means nothing was sent.
    """

    async def send_text(self, user_id: int, text: str) -> int | None: ...

    async def show_prompt(
        self, user_id: int, text: str, markup: InlineKeyboardMarkup
    ) -> int | None: ...

    async def replace_prompt(
        self, user_id: int, message_ref: int | None, text: str, markup: InlineKeyboardMarkup
    ) -> int | None: ...

    async def clear_prompt(self, user_id: int, message_ref: int) -> None: ...

    async def delete_message(self, user_id: int, message_ref: int) -> None: ...


class TelegramDelivery:
    """Delivery over the Bot API; private chats, so chat id equals user id."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_text(self, user_id: int, text: str) -> int | None:
        try:
            message = await self.bot.send_message(
                chat_id=user_id, text=text, parse_mode=ParseMode.HTML
            )
            return message.message_id
        except TelegramAPIError as e:
            logger.error(f"[USER {user_id}] Error sending message: {e}")
            return None

    async def show_prompt(
        self, user_id: int, text: str, markup: InlineKeyboardMarkup
    ) -> int | None:
        try:
            message = await self.bot.send_message(
                chat_id=user_id, text=text, reply_markup=markup, parse_mode=ParseMode.HTML
            )
            return message.message_id
        except TelegramAPIError as e:
            logger.error(f"[USER {user_id}] Error sending prompt: {e}")
            return None

    async def replace_prompt(
        self, user_id: int, message_ref: int | None, text: str, markup: InlineKeyboardMarkup
    ) -> int | None:
        """Edit the current prompt in place, sending a new one if there is none."""
        if message_ref is None:
            logger.warning(f"[USER {user_id}] No prompt to edit, sending a new one")
            return await self.show_prompt(user_id, text, markup)

        try:
            await self.bot.edit_message_text(
                chat_id=user_id,
                message_id=message_ref,
                text=text,
                reply_markup=markup,
                parse_mode=ParseMode.HTML,
            )
            return message_ref
        except TelegramBadRequest as e:
            if "message is not modified" in str(e):
                return message_ref
            logger.warning(f"[USER {user_id}] Error editing prompt {message_ref}: {e}")
            return await self.show_prompt(user_id, text, markup)
        except TelegramAPIError as e:
            logger.warning(f"[USER {user_id}] Error editing prompt {message_ref}: {e}")
            return await self.show_prompt(user_id, text, markup)

    async def clear_prompt(self, user_id: int, message_ref: int) -> None:
        """Remove the inline keyboard from a prompt."""
        try:
            await self.bot.edit_message_reply_markup(
                chat_id=user_id, message_id=message_ref, reply_markup=None
            )
        except TelegramAPIError as e:
            logger.debug(f"[USER {user_id}] Could not clear prompt {message_ref}: {e}")

    async def delete_message(self, user_id: int, message_ref: int) -> None:
        try:
            await self.bot.delete_message(chat_id=user_id, message_id=message_ref)
        except TelegramAPIError as e:
            logger.debug(f"[USER {user_id}] Could not delete message {message_ref}: {e}")
