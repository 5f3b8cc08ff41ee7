"""
Notification port used by the engines
"""

import logging
from typing import Protocol

from ...utils import format_time

logger = logging.getLogger(__name__)


class NotificationPort(Protocol):
    """Fire-and-forget user notifications.

    Engines never await or inspect the result of these calls.
    """

    def notify_time_low(self, minutes_remaining: int) -> None: ...

    def notify_time_depleted(self) -> None: ...

    def notify_streak_milestone(self, streak: int) -> None: ...

    def notify_goal_completed(self, title: str, reward_description: str) -> None: ...

    def update_timer_notification(self, available_seconds: int, is_overtime: bool) -> None: ...

    def clear_timer_notification(self) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the log"""

    def notify_time_low(self, minutes_remaining: int) -> None:
        logger.info(f"⏰ Time warning: {minutes_remaining} minute(s) of screen time left")

    def notify_time_depleted(self) -> None:
        logger.info("⌛ Screen time depleted")

    def notify_streak_milestone(self, streak: int) -> None:
        logger.info(f"🔥 Streak milestone reached: {streak} in a row")

    def notify_goal_completed(self, title: str, reward_description: str) -> None:
        logger.info(f"🎯 Daily goal completed: {title} ({reward_description})")

    def update_timer_notification(self, available_seconds: int, is_overtime: bool) -> None:
        prefix = "-" if is_overtime else ""
        logger.debug(f"Timer: {prefix}{format_time(available_seconds)}")

    def clear_timer_notification(self) -> None:
        logger.debug("Timer notification cleared")
