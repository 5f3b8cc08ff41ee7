"""
Time economy: wires the engines, ports and tick loop together
"""

import logging
import random
from typing import Any

from .clock import Clock, SystemClock
from .config import Settings, get_database_path, get_settings
from .core.analytics.event_sink import AnalyticsSink, LoggingAnalyticsSink
from .core.goals.goals_engine import DailyGoalsEngine
from .core.notifications.notifier import LoggingNotifier, NotificationPort
from .core.questions.question_bank import (
    ALL_CATEGORIES,
    MIXED_DIFFICULTY,
    QuestionBank,
)
from .core.rewards.reward_grant import RewardGrant
from .core.scheduler.tick_scheduler import TickScheduler
from .core.scoring.score_engine import ScoreEngine
from .core.session.quiz_session import QuizSession, QuizSessionError
from .core.storage.kv_store import KeyValueStore, create_store
from .core.storage.models import ALL_KEYS
from .core.timer.timer_engine import TimerEngine

logger = logging.getLogger(__name__)


class TimeEconomy:
    """Coordinates the timer, score and goals engines"""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock,
        notifier: NotificationPort | None = None,
        analytics: AnalyticsSink | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        question_bank: QuestionBank | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.clock = clock
        self.notifier = notifier or LoggingNotifier()
        self.analytics = analytics or LoggingAnalyticsSink()
        self.question_bank = question_bank

        self.timer = TimerEngine(store, clock, self.notifier, self.settings)
        self.score = ScoreEngine(store, clock, self.settings)
        self.goals = DailyGoalsEngine(
            store,
            clock,
            self.timer,
            notifier=self.notifier,
            analytics=self.analytics,
            settings=self.settings,
            rng=rng,
        )
        self.rewards = RewardGrant(
            self.timer, self.settings.ad_reward_seconds, self.analytics
        )
        self.scheduler = TickScheduler(
            self.timer, self.score, interval=self.settings.tick_interval
        )

    def load(self) -> dict[str, bool]:
        """Cold-start load of every engine.

        Engines load independently: one that fails starts from defaults
        and the others still restore their state.
        """
        results = {}
        for name, engine in (
            ("timer", self.timer),
            ("score", self.score),
            ("goals", self.goals),
        ):
            try:
                engine.load()
                results[name] = True
            except Exception as e:
                logger.error(f"Error loading {name} engine: {e}", exc_info=True)
                results[name] = False

        logger.info(f"Time economy loaded: {results}")
        return results

    def new_quiz_session(
        self, category: str = ALL_CATEGORIES, difficulty: str = MIXED_DIFFICULTY
    ) -> QuizSession:
        if self.question_bank is None:
            raise QuizSessionError("No question bank configured")
        return QuizSession(
            score_engine=self.score,
            timer_engine=self.timer,
            goals_engine=self.goals,
            question_bank=self.question_bank,
            clock=self.clock,
            notifier=self.notifier,
            analytics=self.analytics,
            settings=self.settings,
            category=category,
            difficulty=difficulty,
        )

    def get_snapshot(self) -> dict[str, Any]:
        """Current state of every engine, for status displays and export"""
        return {
            "timer": self.timer.get_status().to_dict(),
            "score": self.score.get_statistics(),
            "goals": [goal.to_dict() for goal in self.goals.get_todays_goals()],
            "goal_stats": self.goals.get_completion_stats(),
        }

    def wipe_all(self) -> None:
        """Delete all persisted state and zero every engine"""
        try:
            self.store.remove_all(list(ALL_KEYS))
        except Exception as e:
            logger.error(f"Error removing persisted state: {e}")

        self.timer.reset()
        self.score.reset_all()
        self.goals.reset_daily_goals()
        if self.question_bank is not None and hasattr(
            self.question_bank, "reset_used_questions"
        ):
            self.question_bank.reset_used_questions()
        logger.info("All time economy data wiped")


def create_economy(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    clock: Clock | None = None,
    notifier: NotificationPort | None = None,
    analytics: AnalyticsSink | None = None,
    rng: random.Random | None = None,
    question_bank: QuestionBank | None = None,
) -> TimeEconomy:
    """Build and load a time economy, defaulting to the configured database"""
    settings = settings or get_settings()
    if store is None:
        store = create_store(get_database_path(settings.database_url))
    if clock is None:
        clock = SystemClock(settings.timezone)

    economy = TimeEconomy(
        store,
        clock,
        notifier=notifier,
        analytics=analytics,
        settings=settings,
        rng=rng,
        question_bank=question_bank,
    )
    economy.load()
    return economy
