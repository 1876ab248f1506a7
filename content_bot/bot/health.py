"""Health check HTTP endpoint for hosting platforms."""

import logging

from aiohttp import web

from content_bot.config import HealthConfig

logger = logging.getLogger(__name__)

HEALTH_TEXT = "Bot is alive!"


async def health(request: web.Request) -> web.Response:
    return web.Response(text=HEALTH_TEXT)


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", health)
    return app


async def start_health_server(config: HealthConfig) -> web.AppRunner:
    """Start serving ``GET /`` next to the polling loop.

    Returns:
        Runner to clean up on shutdown
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host=config.host, port=config.port)
    await site.start()
    logger.info(f"Health check server listening on {config.host}:{config.port}")
    return runner
