"""
Unit tests for the score engine
"""

import json
from unittest.mock import Mock

import pytest

from brainbites.clock import ManualClock
from brainbites.config import Settings
from brainbites.core.scoring.score_engine import ScoreEngine, ScoreRecord
from brainbites.core.storage.kv_store import InMemoryKeyValueStore
from brainbites.core.storage.models import SCORE_KEY


class TestScoreEngine:
    """Test points, streaks and counters"""

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def score(self, store, clock):
        """Create a loaded score engine"""
        engine = ScoreEngine(store, clock, Settings(_env_file=None))
        engine.load()
        return engine

    def test_first_correct_answer(self, score):
        """Test the first correct answer earns the base points"""
        result = score.record_correct_answer()

        assert result.points_earned == 10
        assert result.current_streak == 1
        assert result.is_new_high_streak is True

    def test_streak_scaled_points(self, score):
        """Test the fifth answer in a row earns 10 + 4 * 2 points"""
        for _ in range(4):
            score.record_correct_answer()

        result = score.record_correct_answer()

        assert result.points_earned == 18
        assert result.current_streak == 5

    def test_streak_bonus_capped(self, score):
        """Test the streak bonus stops growing after ten steps"""
        points = [score.record_correct_answer().points_earned for _ in range(13)]

        assert points[10] == 30
        assert points[11] == 30
        assert points[12] == 30

    def test_custom_base_points(self, score):
        """Test an explicit base replaces the default"""
        assert score.record_correct_answer(base_points=20).points_earned == 20

    def test_wrong_answer_breaks_streak(self, score):
        """Test a wrong answer after seven correct ones"""
        for _ in range(7):
            score.record_correct_answer()
        total_before = score.get_score_info().total_score

        result = score.record_wrong_answer()
        info = score.get_score_info()

        assert result.streak_lost == 7
        assert result.points_lost == 0
        assert info.current_streak == 0
        assert info.highest_streak == 7
        assert info.total_score == total_before

    def test_counters_consistent(self, score):
        """Test answered always equals correct plus wrong"""
        score.record_correct_answer()
        score.record_wrong_answer()
        score.record_correct_answer()

        info = score.get_score_info()
        assert info.questions_answered == 3
        assert info.correct_answers == 2
        assert info.wrong_answers == 1
        assert info.accuracy == 67

    def test_new_high_streak_only_when_exceeded(self, score):
        """Test matching the previous best is not a new high"""
        for _ in range(3):
            score.record_correct_answer()
        score.record_wrong_answer()

        results = [score.record_correct_answer() for _ in range(4)]

        assert [r.is_new_high_streak for r in results] == [False, False, False, True]

    @pytest.mark.parametrize(
        "streak,expected",
        [(0, False), (4, False), (5, True), (10, True), (35, False), (50, True), (100, True)],
    )
    def test_is_streak_milestone(self, streak, expected):
        """Test exact milestone membership"""
        assert ScoreEngine.is_streak_milestone(streak) is expected

    def test_statistics(self, score):
        """Test derived average points per answer"""
        score.record_correct_answer()
        score.record_correct_answer()

        stats = score.get_statistics()

        assert stats["total_score"] == 22
        assert stats["average_points_per_question"] == 11

    def test_state_persisted(self, score, store):
        """Test the record is written after each answer"""
        score.record_correct_answer()

        data = json.loads(store.get(SCORE_KEY))
        assert data["total_score"] == 10
        assert data["current_streak"] == 1
        assert data["last_reset_date"] == "2024-01-15"

    def test_state_restored(self, score, store, clock):
        """Test a new engine picks up the stored record"""
        score.record_correct_answer()
        score.record_correct_answer()

        restored = ScoreEngine(store, clock, Settings(_env_file=None))
        info = restored.load()

        assert info.total_score == 22
        assert info.current_streak == 2

    def test_corrupted_state(self, clock):
        """Test unreadable score data falls back to zero"""
        store = InMemoryKeyValueStore({SCORE_KEY: "[1, 2"})
        engine = ScoreEngine(store, clock, Settings(_env_file=None))

        info = engine.load()

        assert info.total_score == 0
        assert info.questions_answered == 0

    def test_reset_all(self, score):
        """Test every counter is zeroed"""
        score.record_correct_answer()
        score.record_wrong_answer()

        info = score.reset_all()

        assert info.total_score == 0
        assert info.highest_streak == 0
        assert info.questions_answered == 0


class TestOvertimePenalty:
    """Test overtime penalties past the grace buffer"""

    @pytest.fixture
    def score(self):
        engine = ScoreEngine(InMemoryKeyValueStore(), ManualClock(), Settings(_env_file=None))
        engine.load()
        for _ in range(10):
            engine.record_correct_answer()
        return engine

    def test_no_penalty_with_positive_balance(self, score):
        assert score.apply_overtime_penalty(120) == 0

    def test_no_penalty_inside_buffer(self, score):
        """Test a deficit within the buffer costs nothing"""
        assert score.apply_overtime_penalty(-299) == 0
        assert score.apply_overtime_penalty(-400) == 0

    def test_penalty_past_buffer(self, score):
        """Test one point per two minutes past the buffer"""
        total = score.get_score_info().total_score

        assert score.apply_overtime_penalty(-420) == 1
        assert score.get_score_info().total_score == total - 1

    def test_repeated_calls_do_not_double_charge(self, score):
        """Test the same balance is only charged once"""
        total = score.get_score_info().total_score

        score.apply_overtime_penalty(-420)
        assert score.apply_overtime_penalty(-420) == 0
        assert score.apply_overtime_penalty(-500) == 0
        assert score.apply_overtime_penalty(-540) == 1

        assert score.get_score_info().total_score == total - 2

    def test_partial_recovery_not_charged_again(self, score):
        """Test climbing back inside the deficit does not re-charge"""
        score.apply_overtime_penalty(-660)
        total = score.get_score_info().total_score

        assert score.apply_overtime_penalty(-420) == 0
        assert score.apply_overtime_penalty(-660) == 0
        assert score.get_score_info().total_score == total

    def test_window_resets_when_positive(self, score):
        """Test a new overtime window charges again"""
        score.apply_overtime_penalty(-420)
        score.apply_overtime_penalty(0)

        assert score.apply_overtime_penalty(-420) == 1

    def test_penalty_floor_at_zero(self):
        """Test scores never go negative"""
        engine = ScoreEngine(InMemoryKeyValueStore(), ManualClock(), Settings(_env_file=None))
        engine.load()

        engine.apply_overtime_penalty(-3000)
        info = engine.get_score_info()

        assert info.total_score == 0
        assert info.daily_score == 0

    def test_charged_points_persisted(self, score):
        """Test the charged amount survives a restart"""
        score.apply_overtime_penalty(-540)

        restored = ScoreEngine(score.repository.store, score.clock, Settings(_env_file=None))
        restored.load()

        assert restored.apply_overtime_penalty(-540) == 0


class TestDailyRollover:
    """Test the once-per-day reset of the daily score"""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def score(self, clock):
        engine = ScoreEngine(InMemoryKeyValueStore(), clock, Settings(_env_file=None))
        engine.load()
        return engine

    def test_rollover_resets_daily_score_only(self, score, clock):
        """Test total score and streaks survive midnight"""
        score.record_correct_answer()
        score.record_correct_answer()

        clock.advance(days=1)
        info = score.get_score_info()

        assert info.daily_score == 0
        assert info.total_score == 22
        assert info.current_streak == 2

    def test_rollover_snapshot(self, score, clock):
        """Test the snapshot reports yesterday's score once"""
        score.record_correct_answer()

        clock.advance(days=1)
        rollover = score.ensure_daily_rollover()

        assert rollover.yesterday_score == 10
        assert rollover.previous_date == "2024-01-15"
        assert rollover.new_date == "2024-01-16"
        assert score.ensure_daily_rollover() is None

    def test_rollover_callback(self, score, clock):
        """Test the daily reset callback receives the snapshot"""
        callback = Mock()
        score.set_daily_reset_callback(callback)
        score.record_correct_answer()

        clock.advance(days=1)
        score.record_correct_answer()

        callback.assert_called_once()
        assert callback.call_args[0][0].yesterday_score == 10
        assert score.get_score_info().daily_score == 10

    def test_rollover_callback_error_isolated(self, score, clock):
        """Test a failing callback does not block the reset"""
        score.set_daily_reset_callback(Mock(side_effect=RuntimeError("boom")))
        score.record_correct_answer()

        clock.advance(days=1)

        assert score.get_score_info().daily_score == 0

    def test_same_day_no_rollover(self, score, clock):
        """Test hours later on the same day keep the daily score"""
        score.record_correct_answer()

        clock.advance(hours=11)

        assert score.get_score_info().daily_score == 10


class TestScoreRecord:
    """Test ScoreRecord validation"""

    def test_highest_streak_at_least_current(self):
        record = ScoreRecord.from_data({"current_streak": 6, "highest_streak": 2})

        assert record.highest_streak == 6

    def test_negative_values_clamped(self):
        record = ScoreRecord.from_data({"total_score": -10, "daily_score": -3})

        assert record.total_score == 0
        assert record.daily_score == 0
