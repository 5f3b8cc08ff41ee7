"""
Persisted state models for the BrainBites time economy
"""

from typing import TypedDict

SCHEMA_VERSION = 1

TIMER_KEY = "brainbites_timer_data"
SCORE_KEY = "brainbites_score_data"
GOALS_KEY = "brainbites_daily_goals"
GOALS_PROGRESS_KEY = "brainbites_daily_goals_progress"
USED_QUESTIONS_KEY = "brainbites_used_questions"

ALL_KEYS = [
    TIMER_KEY,
    SCORE_KEY,
    GOALS_KEY,
    GOALS_PROGRESS_KEY,
    USED_QUESTIONS_KEY,
]


class TimerData(TypedDict):
    """Timer blob"""
    schema_version: int
    available_seconds: int
    total_earned_seconds: int
    is_running: bool
    last_observed_at: float


class ScoreData(TypedDict):
    """Score blob"""
    schema_version: int
    total_score: int
    daily_score: int
    current_streak: int
    highest_streak: int
    questions_answered: int
    correct_answers: int
    wrong_answers: int
    last_reset_date: str | None
    overtime_points_charged: int


class GoalsData(TypedDict):
    """Today's goal selection blob"""
    schema_version: int
    goal_ids: list[str]
    last_reset_date: str | None


class GoalProgressData(TypedDict):
    """Per-goal progress entry inside the progress blob"""
    current: int
    completed: bool
    claimed: bool
    labels: list[str]


class UsedQuestionsData(TypedDict):
    """Question bank bookkeeping blob"""
    schema_version: int
    used_ids: list[int | str]
