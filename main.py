"""Entry-point for running the Speaker Role Discord bot."""

from __future__ import annotations

import asyncio
import logging

from speakerrole import create_bot
from speakerrole.health import start_health_server
from speakerrole.models.config import load_settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


async def async_main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info("Starting Discord bot...")

    bot = create_bot(settings)
    health_server = await start_health_server(bot, settings)
    try:
        await bot.start(settings.discord_token)
    finally:
        health_server.close()
        await health_server.wait_closed()
        if not bot.is_closed():
            await bot.close()


def main() -> None:
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
