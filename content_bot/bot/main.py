"""Main bot file."""

import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiohttp import web
from dotenv import load_dotenv
from pydantic import ValidationError

from content_bot.bot.conversation import Conversation
from content_bot.bot.delivery import TelegramDelivery
from content_bot.bot.handlers import content, photos, start
from content_bot.bot.health import start_health_server
from content_bot.bot.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from content_bot.bot.storage import create_state_store
from content_bot.config import get_config
from content_bot.services.gemini_client import get_gemini_client

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s · %(levelname)s · %(name)s · %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def create_dispatcher(conversation: Conversation) -> Dispatcher:
    """Build dispatcher with middleware and routers."""
    dp = Dispatcher(storage=conversation.store.storage)
    dp["conversation"] = conversation

    # Register middleware (order matters!)
    for observer in (dp.message, dp.callback_query):
        observer.middleware(LoggingMiddleware())
        observer.middleware(ErrorHandlerMiddleware())  # Error handling last

    # Commands before text so "/cancel" never becomes context
    dp.include_router(start.router)
    dp.include_router(photos.router)
    dp.include_router(content.router)
    return dp


async def main() -> None:
    """Main entry point."""
    try:
        config = get_config()
    except ValidationError as e:
        logger.error(
            f"TELEGRAM_BOT_TOKEN and GEMINI_API_KEY must be set in .env or environment: {e}"
        )
        sys.exit(1)

    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)

    logger.info("Starting ARSourcingBD Content Bot...")

    bot = Bot(token=config.telegram.bot_token)
    conversation = Conversation(
        store=create_state_store(bot_id=bot.id),
        delivery=TelegramDelivery(bot),
        generator=get_gemini_client(),
    )
    dp = create_dispatcher(conversation)

    health_runner: web.AppRunner | None = None
    try:
        if config.health.enabled:
            health_runner = await start_health_server(config.health)

        me = await bot.get_me()
        logger.info(f"Authorized on account {me.username}")

        # Each update is handled in its own task
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())

    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        logger.info("Shutting down...")
        if health_runner is not None:
            await health_runner.cleanup()
        await bot.session.close()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
