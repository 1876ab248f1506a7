"""Handler for photo messages."""

import logging

from aiogram import Bot, F, Router
from aiogram.types import Message

from content_bot.bot.conversation import Conversation
from content_bot.bot.events import PhotoReceived
from content_bot.utils.file_handler import download_photo

logger = logging.getLogger(__name__)

router = Router()


@router.message(F.photo)
async def handle_photo(message: Message, bot: Bot, conversation: Conversation) -> None:
    """Download the product photo and pass it to the conversation."""
    user_id = message.from_user.id
    logger.info(f"[USER {user_id}] Received photo, downloading...")

    downloaded = await download_photo(bot, message)
    if downloaded is None:
        logger.error(f"[USER {user_id}] Failed to download photo")
        image, mime_type = b"", ""
    else:
        image, mime_type = downloaded

    await conversation.handle(PhotoReceived(user_id=user_id, image=image, mime_type=mime_type))
