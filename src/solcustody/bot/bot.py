"""Telegram bot construction and the bot-only runner."""

import asyncio
import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from solcustody.bot.handlers import setup_routers
from solcustody.config import Settings, get_settings
from solcustody.context import get_context

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(debug: bool) -> None:
    """Root logging for the entry points; HTTP client chatter stays at WARNING."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("aiogram").setLevel(logging.INFO)


def create_bot(settings: Optional[Settings] = None) -> tuple[Bot, Dispatcher]:
    """Build the bot and a dispatcher with every command router attached.

    Raises:
        ValueError: If no bot token is configured
    """
    settings = settings or get_settings()
    if not settings.telegram_bot_token:
        raise ValueError("TELEGRAM_BOT_TOKEN is not set")

    # Replies are plain text: addresses and amounts must not be parsed as markup
    bot = Bot(token=settings.telegram_bot_token)
    dp = Dispatcher(storage=MemoryStorage())
    dp.include_router(setup_routers())
    return bot, dp


async def run_bot() -> None:
    settings = get_settings()
    configure_logging(settings.debug)
    logger.info(f"Starting solcustody bot on {settings.solana_network}")

    context = get_context()
    bot, dp = create_bot(settings)
    try:
        await bot.delete_webhook(drop_pending_updates=True)
        await dp.start_polling(bot)
    finally:
        await bot.session.close()
        await context.close()


def main() -> None:
    """Console entry point (``solcustody-bot``)."""
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
