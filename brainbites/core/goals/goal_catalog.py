"""
Catalog of daily goals
"""

from dataclasses import dataclass

from .events import ProgressKind


@dataclass(frozen=True)
class GoalDefinition:
    """Static goal template"""

    id: str
    title: str
    description: str
    target: int
    progress_kind: ProgressKind
    reward_seconds: int
    reward_description: str
    # Local hour before which a session must finish (time-of-day goals only)
    before_hour: int | None = None
    # Minimum session size for perfect-session goals
    min_questions: int = 0


GOAL_CATALOG: tuple[GoalDefinition, ...] = (
    GoalDefinition(
        id="answer_15",
        title="Knowledge Seeker",
        description="Answer 15 questions",
        target=15,
        progress_kind=ProgressKind.QUESTIONS_ANSWERED,
        reward_seconds=3600,
        reward_description="1 hour of extra screen time",
    ),
    GoalDefinition(
        id="streak_10",
        title="Streak Master",
        description="Get a 10 question streak",
        target=10,
        progress_kind=ProgressKind.STREAK_REACHED,
        reward_seconds=3600,
        reward_description="1 hour of extra screen time",
    ),
    GoalDefinition(
        id="answer_25",
        title="Quiz Champion",
        description="Answer 25 questions",
        target=25,
        progress_kind=ProgressKind.QUESTIONS_ANSWERED,
        reward_seconds=5400,
        reward_description="90 minutes of extra screen time",
    ),
    GoalDefinition(
        id="correct_20",
        title="Accuracy Expert",
        description="Get 20 correct answers",
        target=20,
        progress_kind=ProgressKind.CORRECT_ANSWERS,
        reward_seconds=4500,
        reward_description="75 minutes of extra screen time",
    ),
    GoalDefinition(
        id="streak_5_twice",
        title="Consistent Learner",
        description="Get two 5+ question streaks",
        target=2,
        progress_kind=ProgressKind.STREAK_MILESTONE_COUNT,
        reward_seconds=2700,
        reward_description="45 minutes of extra screen time",
    ),
    GoalDefinition(
        id="play_3_categories",
        title="Well Rounded",
        description="Play in 3 different categories",
        target=3,
        progress_kind=ProgressKind.CATEGORIES_PLAYED,
        reward_seconds=3600,
        reward_description="1 hour of extra screen time",
    ),
    GoalDefinition(
        id="perfect_quiz",
        title="Perfect Score",
        description="Complete a quiz with 100% accuracy (min 10 questions)",
        target=1,
        progress_kind=ProgressKind.PERFECT_SESSION,
        reward_seconds=7200,
        reward_description="2 hours of extra screen time",
        min_questions=10,
    ),
    GoalDefinition(
        id="earn_30_min",
        title="Time Builder",
        description="Earn 30 minutes of screen time",
        target=1800,
        progress_kind=ProgressKind.TIME_EARNED,
        reward_seconds=1800,
        reward_description="30 bonus minutes",
    ),
    GoalDefinition(
        id="morning_session",
        title="Early Bird",
        description="Complete a quiz before 10 AM",
        target=1,
        progress_kind=ProgressKind.TIME_OF_DAY_SESSION,
        reward_seconds=2700,
        reward_description="45 minutes of extra screen time",
        before_hour=10,
    ),
    GoalDefinition(
        id="difficulty_master",
        title="Difficulty Master",
        description="Play all 3 difficulty levels",
        target=3,
        progress_kind=ProgressKind.DIFFICULTIES_PLAYED,
        reward_seconds=3600,
        reward_description="1 hour of extra screen time",
    ),
)


def get_goal_by_id(goal_id: str) -> GoalDefinition | None:
    for goal in GOAL_CATALOG:
        if goal.id == goal_id:
            return goal
    return None
