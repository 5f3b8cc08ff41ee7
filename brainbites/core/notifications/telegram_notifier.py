"""
Telegram delivery for time-economy notifications
"""

import asyncio
import logging

from telegram import Bot
from telegram.error import TelegramError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends notifications to a single Telegram chat.

    Calls return immediately; the message is sent on the running event loop.
    """

    def __init__(self, bot: Bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id
        self._pending: set[asyncio.Task] = set()

    def notify_time_low(self, minutes_remaining: int) -> None:
        unit = "minute" if minutes_remaining == 1 else "minutes"
        self._send(
            f"⏰ <b>Time running low</b>\n"
            f"Only {minutes_remaining} {unit} of screen time left. "
            "Answer some questions to earn more!"
        )

    def notify_time_depleted(self) -> None:
        self._send(
            "⌛ <b>Screen time used up</b>\n"
            "You have a 5 minute grace period before your score starts to drop."
        )

    def notify_streak_milestone(self, streak: int) -> None:
        self._send(f"🔥 <b>{streak} in a row!</b>\nYou earned 2 bonus minutes.")

    def notify_goal_completed(self, title: str, reward_description: str) -> None:
        self._send(
            f"🎯 <b>Daily goal completed: {title}</b>\n"
            f"Claim your reward: {reward_description}"
        )

    def update_timer_notification(self, available_seconds: int, is_overtime: bool) -> None:
        # A chat message per tick would flood the chat; the balance is only logged.
        logger.debug(
            f"Timer update for chat {self.chat_id}: {available_seconds}s "
            f"(overtime={is_overtime})"
        )

    def clear_timer_notification(self) -> None:
        logger.debug(f"Timer notification cleared for chat {self.chat_id}")

    def _send(self, text: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, dropping notification: {text!r}")
            return

        task = loop.create_task(self._safe_send(text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _safe_send(self, text: str) -> None:
        try:
            await self.bot.send_message(
                chat_id=self.chat_id, text=text, parse_mode="HTML"
            )
        except TelegramError as e:
            logger.error(f"Failed to send notification to chat {self.chat_id}: {e}")

    async def drain(self) -> None:
        """Wait for in-flight messages, used on shutdown"""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
