"""Handlers for bot commands."""

import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from content_bot.bot import events
from content_bot.bot.conversation import Conversation

logger = logging.getLogger(__name__)

router = Router()


def command_name(text: str) -> str:
    """Extract ``name`` from ``/name@bot args``."""
    return text.split(maxsplit=1)[0].lstrip("/").split("@", 1)[0].lower()


@router.message(CommandStart())
async def cmd_start(message: Message, conversation: Conversation) -> None:
    """Handle /start: greet and reset the conversation."""
    await conversation.handle(events.Command(user_id=message.from_user.id, name="start"))


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, conversation: Conversation) -> None:
    """Handle /cancel: drop everything collected so far."""
    await conversation.handle(events.Command(user_id=message.from_user.id, name="cancel"))


@router.message(F.text.startswith("/"))
async def cmd_unknown(message: Message, conversation: Conversation) -> None:
    name = command_name(message.text)
    await conversation.handle(events.Command(user_id=message.from_user.id, name=name))
