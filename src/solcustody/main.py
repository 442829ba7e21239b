"""Combined runner: Telegram bot polling and the health API in one process."""

import asyncio
import logging
import signal
from typing import Optional

import uvicorn
from aiogram import Bot, Dispatcher

from solcustody.api.app import create_app
from solcustody.bot.bot import configure_logging, create_bot
from solcustody.config import Settings, get_settings
from solcustody.context import AppContext, get_context

logger = logging.getLogger(__name__)


class Application:
    """Runs the bot (when a token is set) next to the API server.

    Either service exiting on its own, or a shutdown signal, stops both.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.context: Optional[AppContext] = None
        self.bot: Optional[Bot] = None
        self.dp: Optional[Dispatcher] = None
        self.server: Optional[uvicorn.Server] = None
        self._stop = asyncio.Event()

    async def start(self):
        configure_logging(self.settings.debug)
        logger.info(
            f"Starting solcustody ({self.settings.environment}) on {self.settings.solana_network}, "
            f"signer backend {self.settings.signer_backend}"
        )

        # Build the signer and clients before accepting any traffic
        self.context = get_context()

        services = {asyncio.create_task(self._serve_api(), name="api")}
        if self.settings.telegram_bot_token:
            self.bot, self.dp = create_bot()
            services.add(asyncio.create_task(self._poll_bot(), name="bot"))
        else:
            logger.warning("TELEGRAM_BOT_TOKEN not set - running the API only")

        stopper = asyncio.create_task(self._stop.wait(), name="stop")
        done, _ = await asyncio.wait(services | {stopper}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task is not stopper and not task.cancelled() and task.exception():
                logger.error(f"{task.get_name()} stopped with an error: {task.exception()!r}")

        await self._stop_services(services, stopper)
        await self._cleanup()

    async def _poll_bot(self):
        await self.bot.delete_webhook(drop_pending_updates=True)
        logger.info("Bot polling started")
        await self.dp.start_polling(self.bot, handle_signals=False)

    async def _serve_api(self):
        config = uvicorn.Config(
            create_app(),
            host=self.settings.api_host,
            port=self.settings.api_port,
            log_level="debug" if self.settings.debug else "info",
        )
        self.server = uvicorn.Server(config)
        logger.info(f"API listening on {self.settings.api_host}:{self.settings.api_port}")
        await self.server.serve()

    async def _stop_services(self, services: set, stopper: asyncio.Task):
        stopper.cancel()
        if self.dp is not None:
            try:
                await self.dp.stop_polling()
            except RuntimeError:
                logger.debug("Bot polling was not running")
        if self.server is not None:
            self.server.should_exit = True

        _, pending = await asyncio.wait(services, timeout=10)
        for task in pending:
            logger.warning(f"{task.get_name()} did not stop in time, cancelling")
            task.cancel()
        await asyncio.gather(*services, stopper, return_exceptions=True)

    async def _cleanup(self):
        if self.bot is not None:
            await self.bot.session.close()
        if self.context is not None:
            await self.context.close()
        logger.info("Shutdown complete")

    def shutdown(self):
        logger.info("Shutdown requested")
        self._stop.set()


def main():
    """Console entry point (``solcustody``)."""
    from dotenv import load_dotenv

    load_dotenv()
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    finally:
        loop.close()


if __name__ == "__main__":
    main()
