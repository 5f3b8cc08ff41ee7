"""
Quiz session orchestration: turns answered questions into engine updates
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ...clock import Clock
from ...config import Settings, get_settings
from ...utils import calculate_percentage, fire_and_forget
from ..analytics.event_sink import AnalyticsSink, LoggingAnalyticsSink
from ..goals.events import (
    CategoryPlayed,
    CorrectAnswers,
    DifficultyPlayed,
    PerfectSession,
    QuestionsAnswered,
    SessionCompletedAt,
    StreakMilestoneReached,
    StreakReached,
    TimeEarned,
)
from ..goals.goals_engine import DailyGoalsEngine
from ..notifications.notifier import LoggingNotifier, NotificationPort
from ..questions.question_bank import (
    ALL_CATEGORIES,
    MIXED_DIFFICULTY,
    Question,
    QuestionBank,
)
from ..scoring.score_engine import ScoreEngine
from ..timer.timer_engine import TimerEngine

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Quiz session states"""
    IDLE = "idle"
    PRESENTING = "presenting"
    ANSWERED = "answered"
    ADVANCING = "advancing"
    FINISHED = "finished"
    EXHAUSTED = "exhausted"


class QuizSessionError(Exception):
    """Raised when the session is driven out of order"""


@dataclass
class QuizAnswerEvent:
    """One answered question"""

    question_id: int | str
    category: str
    difficulty: str
    chosen_option: str
    correct_option: str
    answer_time_seconds: float
    is_correct: bool


@dataclass
class AnswerOutcome:
    """Everything the engines did for one answer"""

    event: QuizAnswerEvent
    points_earned: int
    current_streak: int
    streak_lost: int
    time_added: int
    is_streak_milestone: bool
    is_new_high_streak: bool
    goals_updated: bool


@dataclass
class SessionSummary:
    total_questions: int
    correct_answers: int
    wrong_answers: int
    accuracy: int
    total_time_earned: int
    categories: list[str]
    difficulties: list[str]
    elapsed_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SessionStats:
    total_questions: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    total_time_earned: int = 0
    categories_played: set[str] = field(default_factory=set)
    difficulties_played: set[str] = field(default_factory=set)


class QuizSession:
    """One quiz run: PRESENTING -> ANSWERED -> ADVANCING -> PRESENTING.

    All engine updates for an answer happen under a lock, so the next
    question cannot be fetched (or answered) before the previous answer's
    side effects have settled.
    """

    def __init__(
        self,
        score_engine: ScoreEngine,
        timer_engine: TimerEngine,
        goals_engine: DailyGoalsEngine,
        question_bank: QuestionBank,
        clock: Clock,
        notifier: NotificationPort | None = None,
        analytics: AnalyticsSink | None = None,
        settings: Settings | None = None,
        category: str = ALL_CATEGORIES,
        difficulty: str = MIXED_DIFFICULTY,
    ):
        self.settings = settings or get_settings()
        self.score_engine = score_engine
        self.timer_engine = timer_engine
        self.goals_engine = goals_engine
        self.question_bank = question_bank
        self.clock = clock
        self.notifier = notifier or LoggingNotifier()
        self.analytics = analytics or LoggingAnalyticsSink()
        self.category = category
        self.difficulty = difficulty

        self.state = SessionState.IDLE
        self.stats = SessionStats()
        self.current_question: Question | None = None
        self.question_number = 0
        self.started_at: datetime | None = None
        self._presented_at: datetime | None = None
        self._lock = asyncio.Lock()

    async def start(self) -> Question | None:
        """Present the first question"""
        async with self._lock:
            if self.state is not SessionState.IDLE:
                raise QuizSessionError(f"Session already started ({self.state.value})")
            self.started_at = self.clock.now()
            logger.info(
                f"Quiz session started: category={self.category}, "
                f"difficulty={self.difficulty}"
            )
            return self._load_next_question()

    async def submit_answer(self, option: str) -> AnswerOutcome:
        """Score the presented question and apply its effects exactly once"""
        async with self._lock:
            if self.state is not SessionState.PRESENTING or self.current_question is None:
                raise QuizSessionError(
                    f"No question is awaiting an answer ({self.state.value})"
                )

            question = self.current_question
            answer_time = (self.clock.now() - self._presented_at).total_seconds()
            event = QuizAnswerEvent(
                question_id=question.id,
                category=question.category,
                difficulty=question.level,
                chosen_option=option,
                correct_option=question.correct_answer,
                answer_time_seconds=max(0.0, answer_time),
                is_correct=option == question.correct_answer,
            )
            self.state = SessionState.ANSWERED

            if event.is_correct:
                outcome = self._apply_correct_answer(event)
            else:
                outcome = self._apply_wrong_answer(event)

            self._record_stats(event, outcome.time_added)
            fire_and_forget(
                self.analytics.track,
                "answer_selected",
                {
                    "is_correct": event.is_correct,
                    "category": event.category,
                    "answer_time": round(event.answer_time_seconds, 2),
                    "streak": outcome.current_streak,
                },
            )
            return outcome

    def _apply_correct_answer(self, event: QuizAnswerEvent) -> AnswerOutcome:
        # Score first: the goals below read the already-updated streak.
        score_result = self.score_engine.record_correct_answer()
        streak = score_result.current_streak
        is_milestone = self.score_engine.is_streak_milestone(streak)

        time_added = self.settings.correct_answer_seconds
        if is_milestone:
            time_added += self.settings.streak_milestone_bonus_seconds
        self.timer_engine.add_earned_time(time_added)

        if is_milestone:
            logger.info(f"Streak milestone: {streak}")
            fire_and_forget(self.notifier.notify_streak_milestone, streak)

        goal_events = [
            QuestionsAnswered(),
            CorrectAnswers(),
            TimeEarned(seconds=time_added),
            StreakReached(streak=streak),
        ]
        if is_milestone:
            goal_events.append(StreakMilestoneReached(streak=streak))
        goals_updated = self._record_goal_events(goal_events)

        return AnswerOutcome(
            event=event,
            points_earned=score_result.points_earned,
            current_streak=streak,
            streak_lost=0,
            time_added=time_added,
            is_streak_milestone=is_milestone,
            is_new_high_streak=score_result.is_new_high_streak,
            goals_updated=goals_updated,
        )

    def _apply_wrong_answer(self, event: QuizAnswerEvent) -> AnswerOutcome:
        score_result = self.score_engine.record_wrong_answer()
        goals_updated = self._record_goal_events([QuestionsAnswered()])

        return AnswerOutcome(
            event=event,
            points_earned=0,
            current_streak=0,
            streak_lost=score_result.streak_lost,
            time_added=0,
            is_streak_milestone=False,
            is_new_high_streak=False,
            goals_updated=goals_updated,
        )

    def _record_goal_events(self, events) -> bool:
        updated = False
        for goal_event in events:
            if self.goals_engine.record_event(goal_event):
                updated = True
        return updated

    def _record_stats(self, event: QuizAnswerEvent, time_added: int) -> None:
        stats = self.stats
        stats.total_questions += 1
        if event.is_correct:
            stats.correct_answers += 1
        else:
            stats.wrong_answers += 1
        stats.total_time_earned += time_added
        if event.category:
            stats.categories_played.add(event.category)
        if event.difficulty:
            stats.difficulties_played.add(event.difficulty)

    async def advance(self, expected_question_number: int | None = None) -> Question | None:
        """Move from an answered question to the next one.

        With expected_question_number, the advance only happens while that
        question is still the one on display; otherwise None is returned.
        """
        async with self._lock:
            if expected_question_number is not None and (
                self.state is not SessionState.ANSWERED
                or self.question_number != expected_question_number
            ):
                logger.debug(
                    f"Skipping stale advance for question {expected_question_number}"
                )
                return None
            if self.state is not SessionState.ANSWERED:
                raise QuizSessionError(f"Cannot advance from {self.state.value}")
            self.state = SessionState.ADVANCING
            return self._load_next_question()

    async def auto_advance(self, delay: float | None = None) -> Question | None:
        """Advance after the answer has been shown for a while.

        Returns None if the session moved on in the meantime.
        """
        if delay is None:
            delay = self.settings.auto_advance_seconds
        question_number = self.question_number
        await asyncio.sleep(delay)
        return await self.advance(expected_question_number=question_number)

    def _load_next_question(self) -> Question | None:
        """Fetch a question, relaxing difficulty first and then category"""
        attempts = [(self.category, self.difficulty)]
        if self.difficulty != MIXED_DIFFICULTY:
            attempts.append((self.category, MIXED_DIFFICULTY))
        if self.category != ALL_CATEGORIES:
            attempts.append((ALL_CATEGORIES, MIXED_DIFFICULTY))

        for category, difficulty in attempts:
            question = self.question_bank.pick_question(category, difficulty)
            if question is None:
                continue
            if (category, difficulty) != attempts[0]:
                logger.info(
                    f"No questions for {self.category}/{self.difficulty}, "
                    f"using {category}/{difficulty}"
                )
            self.current_question = question
            self._presented_at = self.clock.now()
            self.question_number += 1
            self.state = SessionState.PRESENTING
            return question

        logger.error("No questions available in the question bank")
        self.current_question = None
        self.state = SessionState.EXHAUSTED
        return None

    async def complete(self) -> SessionSummary:
        """Finish the session and feed session-level goals. Idempotent."""
        async with self._lock:
            summary = self._summary()
            if self.state is SessionState.FINISHED:
                return summary

            for category in sorted(self.stats.categories_played):
                self.goals_engine.record_event(CategoryPlayed(category=category))
            for difficulty in sorted(self.stats.difficulties_played):
                self.goals_engine.record_event(DifficultyPlayed(difficulty=difficulty))

            if summary.total_questions >= self.settings.completed_session_min_questions:
                self.goals_engine.record_event(
                    PerfectSession(
                        total_questions=summary.total_questions,
                        accuracy=summary.accuracy,
                    )
                )
                self.goals_engine.record_event(
                    SessionCompletedAt(completed_at=self.clock.now())
                )

            self.state = SessionState.FINISHED
            self.current_question = None
            logger.info(
                f"Quiz session finished: {summary.correct_answers}/"
                f"{summary.total_questions} correct, "
                f"{summary.total_time_earned}s earned"
            )
            fire_and_forget(
                self.analytics.track,
                "quiz_session_completed",
                {
                    "total_questions": summary.total_questions,
                    "correct_answers": summary.correct_answers,
                    "accuracy": summary.accuracy,
                    "time_earned": summary.total_time_earned,
                    "categories": summary.categories,
                    "difficulties": summary.difficulties,
                },
            )
            return summary

    def _summary(self) -> SessionSummary:
        stats = self.stats
        elapsed = 0.0
        if self.started_at is not None:
            elapsed = (self.clock.now() - self.started_at).total_seconds()
        return SessionSummary(
            total_questions=stats.total_questions,
            correct_answers=stats.correct_answers,
            wrong_answers=stats.wrong_answers,
            accuracy=calculate_percentage(stats.correct_answers, stats.total_questions),
            total_time_earned=stats.total_time_earned,
            categories=sorted(stats.categories_played),
            difficulties=sorted(stats.difficulties_played),
            elapsed_seconds=elapsed,
        )
