#!/usr/bin/env python3
"""
BrainBites Time Economy
Main application entry point
"""

import asyncio
import logging

from telegram import Bot

from brainbites.config import get_settings
from brainbites.core.notifications.telegram_notifier import TelegramNotifier
from brainbites.economy import create_economy
from brainbites.utils import format_time


async def main():
    """Main application entry point"""
    # Load configuration
    settings = get_settings()

    # Configure logging
    logging.basicConfig(
        level=settings.effective_log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger = logging.getLogger(__name__)
    logger.info("Starting BrainBites time economy...")

    bot = None
    notifier = None
    if settings.telegram_enabled:
        bot = Bot(token=settings.telegram_bot_token)
        await bot.initialize()
        notifier = TelegramNotifier(bot, settings.telegram_chat_id)
        logger.info(f"Telegram notifications enabled for chat {settings.telegram_chat_id}")

    economy = create_economy(settings, notifier=notifier)
    status = economy.timer.start()
    logger.info(f"Screen time session started with {format_time(status.available_seconds)} available")

    try:
        await economy.scheduler.on_foreground()
        await asyncio.Event().wait()
    except KeyboardInterrupt:
        logger.info("Shutdown requested, stopping timer...")
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        raise
    finally:
        await economy.scheduler.on_background()
        status = economy.timer.stop()
        logger.info(f"Timer stopped with {format_time(status.available_seconds)} available")
        if notifier:
            await notifier.drain()
        if bot:
            await bot.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
