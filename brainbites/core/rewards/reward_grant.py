"""
Reward grants from outside the quiz (rewarded ads)
"""

import logging

from ...utils import fire_and_forget
from ..analytics.event_sink import AnalyticsSink, LoggingAnalyticsSink
from ..timer.timer_engine import TimerEngine

logger = logging.getLogger(__name__)


class RewardGrant:
    """Routes bonus-time rewards into the timer engine.

    The timer does not know where the reward came from.
    """

    def __init__(
        self,
        timer_engine: TimerEngine,
        default_seconds: int = 300,
        analytics: AnalyticsSink | None = None,
    ):
        self.timer_engine = timer_engine
        self.default_seconds = default_seconds
        self.analytics = analytics or LoggingAnalyticsSink()

    def grant_bonus_seconds(self, seconds: int | None = None) -> int:
        """Credit a bonus and return the new balance"""
        amount = self.default_seconds if seconds is None else seconds
        before = self.timer_engine.get_total_earned_time()
        balance = self.timer_engine.add_earned_time(amount)

        if self.timer_engine.get_total_earned_time() > before:
            logger.info(f"Granted {amount}s bonus time")
            fire_and_forget(self.analytics.track, "bonus_time_granted", {"seconds": amount})
        return balance
