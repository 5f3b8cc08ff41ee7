"""
Timer engine: the screen-time balance state machine
"""

import logging
import math
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from ...clock import Clock, epoch_seconds
from ...config import Settings, get_settings
from ...utils import fire_and_forget
from ..notifications.notifier import LoggingNotifier, NotificationPort
from ..storage.kv_store import KeyValueStore
from ..storage.models import SCHEMA_VERSION, TIMER_KEY, TimerData
from ..storage.state_repository import StateRepository

logger = logging.getLogger(__name__)


@dataclass
class TimeBalance:
    """Spendable screen-time credit"""

    available_seconds: int = 0
    total_earned_seconds: int = 0
    is_running: bool = False
    last_observed_at: float = 0.0

    def to_data(self) -> TimerData:
        return {
            "schema_version": SCHEMA_VERSION,
            "available_seconds": self.available_seconds,
            "total_earned_seconds": self.total_earned_seconds,
            "is_running": self.is_running,
            "last_observed_at": self.last_observed_at,
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "TimeBalance":
        return cls(
            available_seconds=int(data.get("available_seconds", 0)),
            total_earned_seconds=max(0, int(data.get("total_earned_seconds", 0))),
            is_running=bool(data.get("is_running", False)),
            last_observed_at=float(data.get("last_observed_at", 0.0)),
        )


@dataclass
class TimerStatus:
    """Snapshot of the balance handed to callers and listeners"""

    available_seconds: int
    is_running: bool
    is_overtime: bool
    in_buffer: bool
    total_earned_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


TimerListener = Callable[[TimerStatus], None]


class TimerEngine:
    """Owns the time balance.

    The balance decreases by whole elapsed seconds while running. Elapsed
    time is always computed from the wall clock, so a tick loop that was
    paused (app in background, process killed) catches up in a single step
    with exactly the same result as uninterrupted ticking.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock,
        notifier: NotificationPort | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.repository = StateRepository(store)
        self.clock = clock
        self.notifier = notifier or LoggingNotifier()
        self.overtime_buffer_seconds = self.settings.overtime_buffer_seconds
        self.warning_thresholds = self.settings.time_warning_thresholds_list
        self.balance = TimeBalance(last_observed_at=epoch_seconds(clock))
        self._listeners: list[TimerListener] = []

    def load(self) -> TimerStatus:
        """Restore the balance at cold start.

        A timer that was running when the process died is charged for the
        whole gap once and then left stopped.
        """
        now = epoch_seconds(self.clock)
        data = self.repository.load(TIMER_KEY)

        if data is None:
            self.balance = TimeBalance(last_observed_at=now)
        else:
            try:
                self.balance = TimeBalance.from_data(data)
            except (TypeError, ValueError) as e:
                logger.error(f"Invalid timer data, starting from zero: {e}")
                self.balance = TimeBalance(last_observed_at=now)

        if self.balance.is_running:
            elapsed = self._whole_seconds_since(self.balance.last_observed_at, now)
            if elapsed > 0:
                logger.info(f"Applying {elapsed}s elapsed while the app was closed")
                self._apply_decrement(elapsed)
            self.balance.is_running = False

        self.balance.last_observed_at = now
        self._save()
        logger.info(
            f"Timer loaded: available={self.balance.available_seconds}s, "
            f"total_earned={self.balance.total_earned_seconds}s"
        )
        return self._status()

    def start(self) -> TimerStatus:
        """Start spending the balance. Idempotent."""
        if self.balance.is_running:
            return self._status()

        self.balance.is_running = True
        self.balance.last_observed_at = epoch_seconds(self.clock)
        logger.info(f"Timer started with {self.balance.available_seconds}s available")
        self._save()
        self._publish()
        return self._status()

    def stop(self) -> TimerStatus:
        """Stop spending the balance. Idempotent."""
        if not self.balance.is_running:
            return self._status()

        self._settle()
        self.balance.is_running = False
        logger.info(f"Timer stopped with {self.balance.available_seconds}s available")
        self._save()
        self._publish()
        return self._status()

    def tick(self) -> TimerStatus:
        """Apply the elapsed whole seconds since the last observation"""
        if not self.balance.is_running:
            return self._status()

        if self._settle() > 0:
            self._save()
            self._publish()
        return self._status()

    def suspend(self) -> TimerStatus:
        """Persist the balance before the app goes to the background"""
        self._settle()
        self._save()
        return self._status()

    def resume(self) -> TimerStatus:
        """Charge the whole background gap when the app returns to the foreground"""
        elapsed = self._settle()
        if elapsed > 0:
            logger.info(f"Applied {elapsed}s elapsed in the background")
            self._save()
            self._publish()
        return self._status()

    def add_earned_time(self, seconds: int) -> int:
        """Credit earned time and return the new balance.

        Every credit (answers, streak bonuses, ad rewards, goal rewards)
        goes through here so total_earned_seconds stays authoritative.
        """
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            logger.warning(f"Rejected invalid time credit: {seconds!r}")
            return self.balance.available_seconds

        self._settle()
        self.balance.available_seconds += seconds
        self.balance.total_earned_seconds += seconds
        logger.info(
            f"Added {seconds}s, available={self.balance.available_seconds}s"
        )
        self._save()
        self._publish()
        return self.balance.available_seconds

    def add_bonus_time(self, seconds: int) -> int:
        """Alias of add_earned_time for bonus sources"""
        return self.add_earned_time(seconds)

    def get_available_time(self) -> int:
        return self.get_status().available_seconds

    def get_total_earned_time(self) -> int:
        return self.balance.total_earned_seconds

    def is_running(self) -> bool:
        return self.balance.is_running

    def get_status(self) -> TimerStatus:
        """Current status, reconciling any unobserved elapsed time first"""
        if self.balance.is_running and self._settle() > 0:
            self._save()
            self._publish()
        return self._status()

    def reset(self) -> TimerStatus:
        """Wipe the balance back to zero"""
        self.balance = TimeBalance(last_observed_at=epoch_seconds(self.clock))
        logger.info("Timer reset")
        self._save()
        self._publish()
        fire_and_forget(self.notifier.clear_timer_notification)
        return self._status()

    def add_listener(self, callback: TimerListener) -> Callable[[], None]:
        """Subscribe to status changes; returns an unsubscribe function"""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _settle(self) -> int:
        """Move last_observed_at forward by the whole seconds elapsed"""
        if not self.balance.is_running:
            return 0

        now = epoch_seconds(self.clock)
        if now < self.balance.last_observed_at:
            # Clock moved backwards; restart observation from here.
            logger.warning("Clock moved backwards, resetting timer observation point")
            self.balance.last_observed_at = now
            return 0

        elapsed = self._whole_seconds_since(self.balance.last_observed_at, now)
        if elapsed <= 0:
            return 0

        # Keep the fractional remainder so repeated ticks do not drift.
        self.balance.last_observed_at += elapsed
        self._apply_decrement(elapsed)
        return elapsed

    @staticmethod
    def _whole_seconds_since(start: float, now: float) -> int:
        return max(0, math.floor(now - start))

    def _apply_decrement(self, elapsed: int) -> None:
        previous = self.balance.available_seconds
        self.balance.available_seconds -= elapsed
        self._signal_crossings(previous, self.balance.available_seconds)

    def _signal_crossings(self, previous: int, current: int) -> None:
        """Edge-triggered warnings; only the lowest threshold crossed is signalled"""
        if current >= previous:
            return

        if previous > 0 >= current:
            logger.info("Screen time depleted")
            fire_and_forget(self.notifier.notify_time_depleted)
            return

        crossed = [t for t in self.warning_thresholds if previous > t >= current]
        if crossed:
            threshold = min(crossed)
            minutes = max(1, threshold // 60)
            logger.info(f"Time warning: {minutes} minute(s) left")
            fire_and_forget(self.notifier.notify_time_low, minutes)

    def _status(self) -> TimerStatus:
        available = self.balance.available_seconds
        return TimerStatus(
            available_seconds=available,
            is_running=self.balance.is_running,
            is_overtime=available < 0,
            in_buffer=-self.overtime_buffer_seconds < available < 0,
            total_earned_seconds=self.balance.total_earned_seconds,
        )

    def _save(self) -> bool:
        return self.repository.save(TIMER_KEY, self.balance.to_data())

    def _publish(self) -> None:
        status = self._status()
        fire_and_forget(
            self.notifier.update_timer_notification,
            status.available_seconds,
            status.is_overtime,
        )
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Error in timer listener: {e}")
