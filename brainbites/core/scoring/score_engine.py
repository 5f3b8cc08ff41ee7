"""
Score engine: points, streaks, overtime penalties and the daily rollover
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, fields
from typing import Any

from ...clock import Clock, calendar_day_key
from ...config import Settings, get_settings
from ...utils import calculate_percentage
from ..storage.kv_store import KeyValueStore
from ..storage.models import SCHEMA_VERSION, SCORE_KEY, ScoreData
from ..storage.state_repository import StateRepository

logger = logging.getLogger(__name__)

STREAK_MILESTONES = frozenset({5, 10, 15, 20, 25, 30, 50, 100})
MAX_STREAK_BONUS_STEPS = 10
STREAK_BONUS_PER_STEP = 2


@dataclass
class ScoreRecord:
    """Cumulative and per-day performance"""

    total_score: int = 0
    daily_score: int = 0
    current_streak: int = 0
    highest_streak: int = 0
    questions_answered: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    last_reset_date: str | None = None
    # Points already deducted for the current overtime window
    overtime_points_charged: int = 0

    def to_data(self) -> ScoreData:
        data = asdict(self)
        data["schema_version"] = SCHEMA_VERSION
        return data

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "ScoreRecord":
        record = cls()
        for field in fields(cls):
            if field.name not in data:
                continue
            value = data[field.name]
            if field.name == "last_reset_date":
                record.last_reset_date = str(value) if value is not None else None
            else:
                setattr(record, field.name, max(0, int(value)))
        record.highest_streak = max(record.highest_streak, record.current_streak)
        return record


@dataclass
class CorrectAnswerResult:
    points_earned: int
    current_streak: int
    is_new_high_streak: bool


@dataclass
class WrongAnswerResult:
    streak_lost: int
    points_lost: int = 0


@dataclass
class DailyRollover:
    """Snapshot taken when a new calendar day is detected"""

    yesterday_score: int
    previous_date: str | None
    new_date: str


@dataclass
class ScoreInfo:
    total_score: int
    daily_score: int
    current_streak: int
    highest_streak: int
    questions_answered: int
    correct_answers: int
    wrong_answers: int
    accuracy: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ScoreEngine:
    """Owns the score record"""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.repository = StateRepository(store)
        self.clock = clock
        self.overtime_buffer_seconds = self.settings.overtime_buffer_seconds
        self.penalty_interval = self.settings.overtime_penalty_interval
        self.record = ScoreRecord()
        self._daily_reset_callback: Callable[[DailyRollover], None] | None = None

    def load(self) -> ScoreInfo:
        """Restore the score record at cold start"""
        data = self.repository.load(SCORE_KEY)
        if data is not None:
            try:
                self.record = ScoreRecord.from_data(data)
            except (TypeError, ValueError) as e:
                logger.error(f"Invalid score data, starting from zero: {e}")
                self.record = ScoreRecord()
        else:
            self.record = ScoreRecord()

        self.ensure_daily_rollover()
        return self._score_info()

    def set_daily_reset_callback(self, callback: Callable[[DailyRollover], None] | None):
        """Register a callback invoked with the snapshot on each rollover"""
        self._daily_reset_callback = callback

    def ensure_daily_rollover(self) -> DailyRollover | None:
        """Reset the daily score once per calendar day.

        Returns the snapshot of the day that just ended, or None when today's
        reset already happened.
        """
        today = calendar_day_key(self.clock)
        if self.record.last_reset_date == today:
            return None

        rollover = DailyRollover(
            yesterday_score=self.record.daily_score,
            previous_date=self.record.last_reset_date,
            new_date=today,
        )
        self.record.daily_score = 0
        self.record.last_reset_date = today
        self._save()

        logger.info(
            f"Daily score reset for {today} "
            f"(previous day scored {rollover.yesterday_score})"
        )

        if self._daily_reset_callback:
            try:
                self._daily_reset_callback(rollover)
            except Exception as e:
                logger.error(f"Error in daily reset callback: {e}")

        return rollover

    def record_correct_answer(self, base_points: int | None = None) -> CorrectAnswerResult:
        """Count a correct answer and award streak-scaled points"""
        self.ensure_daily_rollover()
        if base_points is None:
            base_points = self.settings.base_points

        record = self.record
        record.questions_answered += 1
        record.correct_answers += 1
        record.current_streak += 1

        streak_bonus = (
            min(record.current_streak - 1, MAX_STREAK_BONUS_STEPS) * STREAK_BONUS_PER_STEP
        )
        points = base_points + streak_bonus

        record.total_score += points
        record.daily_score += points

        is_new_high_streak = record.current_streak > record.highest_streak
        if is_new_high_streak:
            record.highest_streak = record.current_streak

        self._save()
        logger.debug(
            f"Correct answer: +{points} points, streak={record.current_streak}"
        )

        return CorrectAnswerResult(
            points_earned=points,
            current_streak=record.current_streak,
            is_new_high_streak=is_new_high_streak,
        )

    def record_wrong_answer(self) -> WrongAnswerResult:
        """Count a wrong answer and break the streak; wrong answers cost no points"""
        self.ensure_daily_rollover()

        record = self.record
        record.questions_answered += 1
        record.wrong_answers += 1

        previous_streak = record.current_streak
        record.current_streak = 0

        self._save()
        logger.debug(f"Wrong answer: streak of {previous_streak} lost")

        return WrongAnswerResult(streak_lost=previous_streak, points_lost=0)

    @staticmethod
    def is_streak_milestone(streak: int) -> bool:
        return streak in STREAK_MILESTONES

    def apply_overtime_penalty(self, current_available_seconds: int) -> int:
        """Deduct points for overtime past the grace buffer.

        Owed points grow by one per penalty interval beyond the buffer. Only
        the part not already charged in the current overtime window is
        deducted, so calling this every tick never double-penalizes. The
        window closes once the balance is back at or above zero.

        Returns the points deducted by this call.
        """
        self.ensure_daily_rollover()

        if current_available_seconds >= 0:
            if self.record.overtime_points_charged:
                self.record.overtime_points_charged = 0
                self._save()
            return 0

        effective_overtime = max(
            0, abs(current_available_seconds) - self.overtime_buffer_seconds
        )
        if effective_overtime <= 0:
            return 0

        owed = effective_overtime // self.penalty_interval
        to_deduct = owed - self.record.overtime_points_charged
        if to_deduct <= 0:
            return 0

        self.record.total_score = max(0, self.record.total_score - to_deduct)
        self.record.daily_score = max(0, self.record.daily_score - to_deduct)
        self.record.overtime_points_charged = owed
        self._save()

        logger.info(
            f"Overtime penalty: -{to_deduct} points "
            f"({effective_overtime}s past the buffer)"
        )
        return to_deduct

    def get_score_info(self) -> ScoreInfo:
        """Read-only projection of the record"""
        self.ensure_daily_rollover()
        return self._score_info()

    def get_statistics(self) -> dict[str, Any]:
        """Score info plus derived averages"""
        stats = self.get_score_info().to_dict()
        answered = self.record.questions_answered
        stats["average_points_per_question"] = (
            round(self.record.total_score / answered) if answered > 0 else 0
        )
        return stats

    def reset_all(self) -> ScoreInfo:
        """Zero every field and stamp today as the last reset"""
        self.record = ScoreRecord(last_reset_date=calendar_day_key(self.clock))
        self._save()
        logger.info("All scores reset")
        return self._score_info()

    def _score_info(self) -> ScoreInfo:
        record = self.record
        return ScoreInfo(
            total_score=record.total_score,
            daily_score=record.daily_score,
            current_streak=record.current_streak,
            highest_streak=record.highest_streak,
            questions_answered=record.questions_answered,
            correct_answers=record.correct_answers,
            wrong_answers=record.wrong_answers,
            accuracy=calculate_percentage(record.correct_answers, record.questions_answered),
        )

    def _save(self) -> bool:
        return self.repository.save(SCORE_KEY, self.record.to_data())
