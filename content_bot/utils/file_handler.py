"""File handling utilities for Telegram bot."""

import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


def detect_mime_type(data: bytes) -> str:
    """Detect image MIME type from magic bytes.

    Args:
        data: Image contents

    Returns:
        MIME type, JPEG when the format is not recognized
    """
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data.startswith(b"GIF8"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    logger.warning("Unrecognized image format, assuming JPEG")
    return DEFAULT_MIME_TYPE


async def download_photo(bot: Bot, message: Message) -> tuple[bytes, str] | None:
    """Download the largest size of a photo from a Telegram message.

    Args:
        bot: Telegram bot instance
        message: Message with photo

    Returns:
        Photo bytes and their MIME type, or None if error
    """
    if not message.photo:
        return None

    photo = message.photo[-1]
    try:
        buffer = await bot.download(photo.file_id)
    except TelegramAPIError as e:
        logger.error(f"Error downloading photo: {e}", exc_info=True)
        return None

    if buffer is None:
        return None
    data = buffer.read()
    mime_type = detect_mime_type(data)
    logger.info(f"Photo downloaded: {photo.file_id}, size: {len(data)}, mime: {mime_type}")
    return data, mime_type
