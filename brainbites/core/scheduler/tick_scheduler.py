"""
Foreground tick loop that drives the timer and overtime penalties
"""

import asyncio
import contextlib
import logging

from ..scoring.score_engine import ScoreEngine
from ..timer.timer_engine import TimerEngine, TimerStatus

logger = logging.getLogger(__name__)


class TickScheduler:
    """Ticks the timer about once per second while the app is in the foreground.

    Missed ticks are harmless: the timer reconciles elapsed time from the
    wall clock on the next tick.
    """

    def __init__(
        self,
        timer_engine: TimerEngine,
        score_engine: ScoreEngine,
        interval: float = 1.0,
    ):
        self.timer_engine = timer_engine
        self.score_engine = score_engine
        self.interval = interval
        self.is_running = False
        self.task = None
        logger.info(f"Tick scheduler configured with {interval}s interval")

    async def start(self):
        """Start the tick loop"""
        if self.is_running:
            logger.warning("Tick scheduler is already running")
            return

        self.is_running = True
        self.task = asyncio.create_task(self._tick_loop())
        logger.info("Tick scheduler started")

    async def stop(self):
        """Stop the tick loop"""
        if not self.is_running:
            return

        self.is_running = False
        if self.task:
            self.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.task
        self.task = None
        logger.info("Tick scheduler stopped")

    async def on_foreground(self) -> TimerStatus:
        """App came back: charge the background gap and resume ticking"""
        status = self.timer_engine.resume()
        self.score_engine.apply_overtime_penalty(status.available_seconds)
        await self.start()
        return status

    async def on_background(self) -> TimerStatus:
        """App is leaving the foreground: persist and stop ticking"""
        await self.stop()
        return self.timer_engine.suspend()

    def tick_once(self) -> TimerStatus:
        """One tick: reconcile the timer, then charge any overtime penalty"""
        status = self.timer_engine.tick()
        if status.is_running:
            self.score_engine.apply_overtime_penalty(status.available_seconds)
        return status

    async def _tick_loop(self):
        """Main tick loop"""
        while self.is_running:
            try:
                self.tick_once()
                await asyncio.sleep(self.interval)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in tick scheduler: {e}", exc_info=True)
                await asyncio.sleep(self.interval)
