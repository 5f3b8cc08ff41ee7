"""
Daily goals engine: today's goal selection, progress and reward claiming
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any

from ...clock import Clock, calendar_day_key
from ...config import Settings, get_settings
from ...utils import calculate_percentage, fire_and_forget
from ..analytics.event_sink import AnalyticsSink, LoggingAnalyticsSink
from ..notifications.notifier import LoggingNotifier, NotificationPort
from ..storage.kv_store import KeyValueStore
from ..storage.models import (
    GOALS_KEY,
    GOALS_PROGRESS_KEY,
    SCHEMA_VERSION,
    GoalProgressData,
    GoalsData,
)
from ..storage.state_repository import StateRepository
from ..timer.timer_engine import TimerEngine
from .events import GoalEvent, ProgressKind
from .goal_catalog import GOAL_CATALOG, GoalDefinition

logger = logging.getLogger(__name__)

MIN_COUNTED_STREAK = 5


@dataclass
class GoalProgress:
    """Per-day progress on one goal"""

    current: int = 0
    completed: bool = False
    claimed: bool = False
    # Distinct category/difficulty names for the "played" goals
    labels: set[str] = field(default_factory=set)

    def to_data(self) -> GoalProgressData:
        return {
            "current": self.current,
            "completed": self.completed,
            "claimed": self.claimed,
            "labels": sorted(self.labels),
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "GoalProgress":
        completed = bool(data.get("completed", False))
        return cls(
            current=max(0, int(data.get("current", 0))),
            completed=completed,
            claimed=completed and bool(data.get("claimed", False)),
            labels={str(label) for label in data.get("labels", [])},
        )


@dataclass
class DailyGoal:
    """A goal definition joined with today's progress"""

    definition: GoalDefinition
    progress: GoalProgress

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.definition.id,
            "title": self.definition.title,
            "description": self.definition.description,
            "target": self.definition.target,
            "type": self.definition.progress_kind.value,
            "reward": self.definition.reward_description,
            "reward_seconds": self.definition.reward_seconds,
            "progress": self.progress.to_data(),
        }


class DailyGoalsEngine:
    """Owns today's goal selection and progress"""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock,
        timer_engine: TimerEngine,
        notifier: NotificationPort | None = None,
        analytics: AnalyticsSink | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        catalog: tuple[GoalDefinition, ...] = GOAL_CATALOG,
    ):
        self.settings = settings or get_settings()
        self.repository = StateRepository(store)
        self.clock = clock
        self.timer_engine = timer_engine
        self.notifier = notifier or LoggingNotifier()
        self.analytics = analytics or LoggingAnalyticsSink()
        self.rng = rng or random.Random()
        self.catalog = catalog
        self.current_goals: list[GoalDefinition] = []
        self.goal_progress: dict[str, GoalProgress] = {}
        self.last_reset_date: str | None = None

    def load(self) -> list[DailyGoal]:
        """Restore today's selection and progress at cold start"""
        self.current_goals = []
        self.goal_progress = {}
        self.last_reset_date = None

        goals_data = self.repository.load(GOALS_KEY)
        if goals_data is not None:
            self._restore_selection(goals_data)

        progress_data = self.repository.load(GOALS_PROGRESS_KEY)
        if progress_data is not None and self.current_goals:
            self._restore_progress(progress_data)

        self.select_todays_goals()
        return self._joined_goals()

    def _restore_selection(self, data: dict[str, Any]) -> None:
        by_id = {goal.id: goal for goal in self.catalog}
        goal_ids = data.get("goal_ids")
        if not isinstance(goal_ids, list):
            logger.error("Invalid daily goals data, a new selection will be made")
            return

        unknown = [goal_id for goal_id in goal_ids if goal_id not in by_id]
        if unknown:
            logger.warning(f"Stored goals not in catalog: {unknown}, re-selecting")
            return

        self.current_goals = [by_id[goal_id] for goal_id in goal_ids]
        self.last_reset_date = data.get("last_reset_date")

    def _restore_progress(self, data: dict[str, Any]) -> None:
        if data.get("date") != self.last_reset_date:
            logger.warning("Goal progress belongs to another day, starting from zero")
            return

        entries = data.get("goals", {})
        for goal in self.current_goals:
            entry = entries.get(goal.id) if isinstance(entries, dict) else None
            if not isinstance(entry, dict):
                continue
            try:
                self.goal_progress[goal.id] = GoalProgress.from_data(entry)
            except (TypeError, ValueError) as e:
                logger.error(f"Invalid progress for goal {goal.id}: {e}")

    def select_todays_goals(self) -> list[GoalDefinition]:
        """Pick today's goals once per calendar day.

        The selection is persisted immediately; only a missing selection for
        today triggers a new draw.
        """
        today = calendar_day_key(self.clock)
        if self.last_reset_date == today and self.current_goals:
            for goal in self.current_goals:
                self.goal_progress.setdefault(goal.id, GoalProgress())
            return list(self.current_goals)

        count = min(self.settings.daily_goal_count, len(self.catalog))
        self.current_goals = self.rng.sample(list(self.catalog), count)
        self.goal_progress = {goal.id: GoalProgress() for goal in self.current_goals}
        self.last_reset_date = today
        self._save()

        logger.info(
            f"Selected daily goals for {today}: "
            f"{[goal.id for goal in self.current_goals]}"
        )
        return list(self.current_goals)

    def record_event(self, event: GoalEvent) -> bool:
        """Apply an event to every active, unfinished goal of its kind.

        Returns True if any goal's progress or completion changed.
        """
        self.select_todays_goals()
        updated = False

        for goal in self.current_goals:
            if goal.progress_kind is not event.kind:
                continue

            progress = self.goal_progress[goal.id]
            if progress.completed:
                continue

            if self._accumulate(goal, progress, event):
                updated = True

            if progress.current >= goal.target and not progress.completed:
                progress.completed = True
                updated = True
                self._on_goal_completed(goal)

        if updated:
            self._save()

        return updated

    def _accumulate(self, goal: GoalDefinition, progress: GoalProgress, event: GoalEvent) -> bool:
        """Kind-specific accumulation; returns whether current changed"""
        kind = goal.progress_kind

        if kind in (ProgressKind.QUESTIONS_ANSWERED, ProgressKind.CORRECT_ANSWERS):
            if event.count > 0:
                progress.current += event.count
                return True

        elif kind is ProgressKind.STREAK_REACHED:
            reached = min(event.streak, goal.target)
            if reached > progress.current:
                progress.current = reached
                return True

        elif kind is ProgressKind.STREAK_MILESTONE_COUNT:
            if event.streak >= MIN_COUNTED_STREAK:
                progress.current += 1
                return True

        elif kind in (ProgressKind.CATEGORIES_PLAYED, ProgressKind.DIFFICULTIES_PLAYED):
            label = (
                event.category
                if kind is ProgressKind.CATEGORIES_PLAYED
                else event.difficulty
            )
            label = (label or "").strip()
            if label and label not in progress.labels:
                progress.labels.add(label)
                progress.current = len(progress.labels)
                return True

        elif kind is ProgressKind.TIME_EARNED:
            if event.seconds > 0:
                progress.current += event.seconds
                return True

        elif kind is ProgressKind.PERFECT_SESSION:
            if (
                event.accuracy == 100
                and event.total_questions > 0
                and event.total_questions >= goal.min_questions
                and progress.current < 1
            ):
                progress.current = 1
                return True

        elif kind is ProgressKind.TIME_OF_DAY_SESSION:
            if (
                goal.before_hour is not None
                and event.completed_at.hour < goal.before_hour
                and progress.current < 1
            ):
                progress.current = 1
                return True

        return False

    def _on_goal_completed(self, goal: GoalDefinition) -> None:
        logger.info(f"Daily goal completed: {goal.id} ({goal.title})")
        fire_and_forget(
            self.notifier.notify_goal_completed, goal.title, goal.reward_description
        )
        fire_and_forget(
            self.analytics.track,
            "daily_goal_completed",
            {
                "goal_id": goal.id,
                "goal_title": goal.title,
                "reward_seconds": goal.reward_seconds,
            },
        )

    def claim_reward(self, goal_id: str) -> bool:
        """Deposit a completed goal's reward once.

        Returns False without side effects when the goal is not active,
        not completed, or already claimed.
        """
        self.select_todays_goals()
        goal = next((g for g in self.current_goals if g.id == goal_id), None)
        progress = self.goal_progress.get(goal_id)

        if not goal or not progress or not progress.completed or progress.claimed:
            logger.debug(f"Reward for goal {goal_id} not claimable")
            return False

        self.timer_engine.add_earned_time(goal.reward_seconds)
        progress.claimed = True
        self._save()

        logger.info(f"Claimed reward for {goal_id}: {goal.reward_seconds}s")
        fire_and_forget(
            self.analytics.track,
            "daily_goal_reward_claimed",
            {"goal_id": goal.id, "reward_seconds": goal.reward_seconds},
        )
        return True

    def get_todays_goals(self) -> list[DailyGoal]:
        """Today's goals joined with their progress"""
        self.select_todays_goals()
        return self._joined_goals()

    def get_goal_progress(self, goal_id: str) -> GoalProgress:
        self.select_todays_goals()
        return self.goal_progress.get(goal_id) or GoalProgress()

    def get_completion_stats(self) -> dict[str, int]:
        self.select_todays_goals()
        active = [self.goal_progress[goal.id] for goal in self.current_goals]
        total = len(active)
        completed = sum(1 for progress in active if progress.completed)
        claimed = sum(1 for progress in active if progress.claimed)

        return {
            "total": total,
            "completed": completed,
            "claimed": claimed,
            "percentage": calculate_percentage(completed, total),
        }

    def reset_daily_goals(self) -> list[GoalDefinition]:
        """Discard today's selection and draw a new one"""
        self.last_reset_date = None
        self.current_goals = []
        return self.select_todays_goals()

    def _joined_goals(self) -> list[DailyGoal]:
        return [
            DailyGoal(definition=goal, progress=self.goal_progress[goal.id])
            for goal in self.current_goals
        ]

    def _save(self) -> bool:
        goals_data: GoalsData = {
            "schema_version": SCHEMA_VERSION,
            "goal_ids": [goal.id for goal in self.current_goals],
            "last_reset_date": self.last_reset_date,
        }
        progress_data = {
            "schema_version": SCHEMA_VERSION,
            "date": self.last_reset_date,
            "goals": {
                goal_id: progress.to_data()
                for goal_id, progress in self.goal_progress.items()
            },
        }
        saved_goals = self.repository.save(GOALS_KEY, goals_data)
        saved_progress = self.repository.save(GOALS_PROGRESS_KEY, progress_data)
        return saved_goals and saved_progress
