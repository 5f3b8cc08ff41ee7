"""
Goal progress kinds and the events that feed them
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar


class ProgressKind(Enum):
    """How a goal accumulates progress"""
    QUESTIONS_ANSWERED = "questions_answered"
    CORRECT_ANSWERS = "correct_answers"
    STREAK_REACHED = "streak_reached"
    STREAK_MILESTONE_COUNT = "streak_milestone_count"
    CATEGORIES_PLAYED = "categories_played"
    DIFFICULTIES_PLAYED = "difficulties_played"
    TIME_EARNED = "time_earned"
    PERFECT_SESSION = "perfect_session"
    TIME_OF_DAY_SESSION = "time_of_day_session"


@dataclass(frozen=True)
class QuestionsAnswered:
    kind: ClassVar[ProgressKind] = ProgressKind.QUESTIONS_ANSWERED
    count: int = 1


@dataclass(frozen=True)
class CorrectAnswers:
    kind: ClassVar[ProgressKind] = ProgressKind.CORRECT_ANSWERS
    count: int = 1


@dataclass(frozen=True)
class StreakReached:
    """The streak value right after an answer was scored"""
    kind: ClassVar[ProgressKind] = ProgressKind.STREAK_REACHED
    streak: int


@dataclass(frozen=True)
class StreakMilestoneReached:
    kind: ClassVar[ProgressKind] = ProgressKind.STREAK_MILESTONE_COUNT
    streak: int


@dataclass(frozen=True)
class CategoryPlayed:
    kind: ClassVar[ProgressKind] = ProgressKind.CATEGORIES_PLAYED
    category: str


@dataclass(frozen=True)
class DifficultyPlayed:
    kind: ClassVar[ProgressKind] = ProgressKind.DIFFICULTIES_PLAYED
    difficulty: str


@dataclass(frozen=True)
class TimeEarned:
    kind: ClassVar[ProgressKind] = ProgressKind.TIME_EARNED
    seconds: int


@dataclass(frozen=True)
class PerfectSession:
    """A finished session's size and accuracy"""
    kind: ClassVar[ProgressKind] = ProgressKind.PERFECT_SESSION
    total_questions: int
    accuracy: int


@dataclass(frozen=True)
class SessionCompletedAt:
    """A finished session's local completion time"""
    kind: ClassVar[ProgressKind] = ProgressKind.TIME_OF_DAY_SESSION
    completed_at: datetime


GoalEvent = (
    QuestionsAnswered
    | CorrectAnswers
    | StreakReached
    | StreakMilestoneReached
    | CategoryPlayed
    | DifficultyPlayed
    | TimeEarned
    | PerfectSession
    | SessionCompletedAt
)
