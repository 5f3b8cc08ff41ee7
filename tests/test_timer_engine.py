"""
Unit tests for the timer engine
"""

import json
from unittest.mock import Mock

import pytest

from brainbites.clock import ManualClock
from brainbites.config import Settings
from brainbites.core.storage.kv_store import InMemoryKeyValueStore
from brainbites.core.storage.models import TIMER_KEY
from brainbites.core.timer.timer_engine import TimeBalance, TimerEngine


class TestTimerEngine:
    """Test TimerEngine balance handling"""

    @pytest.fixture
    def settings(self):
        return Settings(_env_file=None)

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def notifier(self):
        return Mock()

    @pytest.fixture
    def timer(self, store, clock, notifier, settings):
        """Create a loaded timer engine"""
        engine = TimerEngine(store, clock, notifier, settings)
        engine.load()
        return engine

    def test_initial_state(self, timer):
        """Test a fresh timer starts at zero and stopped"""
        status = timer.get_status()

        assert status.available_seconds == 0
        assert status.total_earned_seconds == 0
        assert status.is_running is False
        assert status.is_overtime is False

    def test_add_earned_time(self, timer):
        """Test credits raise both the balance and the earned total"""
        assert timer.add_earned_time(30) == 30
        assert timer.add_earned_time(120) == 150

        assert timer.get_available_time() == 150
        assert timer.get_total_earned_time() == 150

    @pytest.mark.parametrize("amount", [0, -5, 1.5, True, "30", None])
    def test_add_earned_time_rejects_invalid(self, timer, amount):
        """Test non-positive and non-integer credits are ignored"""
        timer.add_earned_time(60)

        assert timer.add_earned_time(amount) == 60
        assert timer.get_total_earned_time() == 60

    def test_add_bonus_time_is_alias(self, timer):
        """Test bonus time is credited like earned time"""
        timer.add_bonus_time(300)

        assert timer.get_available_time() == 300
        assert timer.get_total_earned_time() == 300

    def test_start_stop_idempotent(self, timer, clock):
        """Test repeated start/stop calls do not change the balance"""
        timer.add_earned_time(100)

        timer.start()
        clock.advance(10)
        timer.start()
        assert timer.is_running() is True

        timer.stop()
        timer.stop()
        assert timer.is_running() is False
        assert timer.get_available_time() == 90

    def test_tick_applies_elapsed_in_one_step(self, timer, clock, notifier):
        """Test a long gap between ticks goes negative in one step"""
        timer.add_earned_time(100)
        timer.start()

        clock.advance(150)
        status = timer.tick()

        assert status.available_seconds == -50
        assert status.is_overtime is True
        assert status.in_buffer is True
        notifier.notify_time_depleted.assert_called_once()
        # Only the lowest crossing is signalled
        notifier.notify_time_low.assert_not_called()

    def test_catch_up_matches_per_second_ticks(self, clock, settings):
        """Test one 150 second catch-up ends where 150 one-second ticks do"""
        caught_up_notifier = Mock()
        caught_up = TimerEngine(InMemoryKeyValueStore(), clock, caught_up_notifier, settings)
        caught_up.load()
        ticking_clock = ManualClock()
        ticking_notifier = Mock()
        ticking = TimerEngine(InMemoryKeyValueStore(), ticking_clock, ticking_notifier, settings)
        ticking.load()
        for engine in (caught_up, ticking):
            engine.add_earned_time(100)
            engine.start()

        clock.advance(150)
        one_step = caught_up.tick()
        for _ in range(150):
            ticking_clock.advance(1)
            stepped = ticking.tick()

        assert one_step.available_seconds == stepped.available_seconds == -50
        assert one_step.is_overtime is stepped.is_overtime is True
        assert caught_up.get_total_earned_time() == ticking.get_total_earned_time() == 100
        assert caught_up_notifier.notify_time_depleted.call_count == 1
        assert ticking_notifier.notify_time_depleted.call_count == 1

    def test_tick_does_nothing_when_stopped(self, timer, clock):
        """Test the balance does not decay while stopped"""
        timer.add_earned_time(100)

        clock.advance(60)
        timer.tick()

        assert timer.get_available_time() == 100

    def test_fractional_seconds_carried(self, timer, clock):
        """Test sub-second ticks accumulate instead of drifting"""
        timer.add_earned_time(100)
        timer.start()

        clock.advance(0.6)
        assert timer.tick().available_seconds == 100

        clock.advance(0.6)
        assert timer.tick().available_seconds == 99

        clock.advance(0.8)
        assert timer.tick().available_seconds == 98

    def test_time_low_warnings_edge_triggered(self, timer, clock, notifier):
        """Test each warning threshold fires once on the way down"""
        timer.add_earned_time(400)
        timer.start()

        clock.advance(150)
        timer.tick()
        notifier.notify_time_low.assert_called_once_with(5)

        clock.advance(10)
        timer.tick()
        assert notifier.notify_time_low.call_count == 1

        clock.advance(200)
        timer.tick()
        assert notifier.notify_time_low.call_count == 2
        notifier.notify_time_low.assert_called_with(1)

    def test_warning_fires_again_after_recharge(self, timer, clock, notifier):
        """Test topping up above a threshold re-arms its warning"""
        timer.add_earned_time(310)
        timer.start()

        clock.advance(20)
        timer.tick()
        assert notifier.notify_time_low.call_count == 1

        timer.add_earned_time(30)
        clock.advance(30)
        timer.tick()
        assert notifier.notify_time_low.call_count == 2

    def test_depleted_fires_once(self, timer, clock, notifier):
        """Test depletion is only signalled when crossing zero"""
        timer.add_earned_time(5)
        timer.start()

        clock.advance(10)
        timer.tick()
        clock.advance(10)
        timer.tick()

        notifier.notify_time_depleted.assert_called_once()

    def test_overtime_classification(self, timer, clock):
        """Test buffered and penalized deficits"""
        timer.start()

        clock.advance(100)
        status = timer.tick()
        assert status.is_overtime is True
        assert status.in_buffer is True

        clock.advance(300)
        status = timer.tick()
        assert status.available_seconds == -400
        assert status.is_overtime is True
        assert status.in_buffer is False

    def test_get_status_reconciles(self, timer, clock):
        """Test reading the status settles unobserved time first"""
        timer.add_earned_time(100)
        timer.start()

        clock.advance(40)

        assert timer.get_status().available_seconds == 60

    def test_clock_moving_backwards(self, timer, clock):
        """Test a backwards clock jump never credits time"""
        timer.add_earned_time(100)
        timer.start()

        clock.advance(-50)
        assert timer.tick().available_seconds == 100

        clock.advance(10)
        assert timer.tick().available_seconds == 90

    def test_suspend_resume_charges_background_gap(self, timer, clock):
        """Test time spent in the background is charged on resume"""
        timer.add_earned_time(600)
        timer.start()

        timer.suspend()
        clock.advance(120)
        status = timer.resume()

        assert status.available_seconds == 480
        assert status.is_running is True

    def test_state_persisted(self, timer, store):
        """Test mutations are written to the store"""
        timer.add_earned_time(90)

        data = json.loads(store.get(TIMER_KEY))
        assert data["available_seconds"] == 90
        assert data["total_earned_seconds"] == 90
        assert data["schema_version"] == 1

    def test_cold_start_applies_gap_and_stops(self, timer, store, clock, notifier, settings):
        """Test a timer killed while running is charged for the whole gap"""
        timer.add_earned_time(1000)
        timer.start()

        clock.advance(400)
        restarted = TimerEngine(store, clock, notifier, settings)
        status = restarted.load()

        assert status.available_seconds == 600
        assert status.is_running is False
        assert status.total_earned_seconds == 1000

    def test_cold_start_stopped_timer_unchanged(self, timer, store, clock, notifier, settings):
        """Test a stopped timer keeps its balance across restarts"""
        timer.add_earned_time(250)

        clock.advance(3600)
        restarted = TimerEngine(store, clock, notifier, settings)

        assert restarted.load().available_seconds == 250

    def test_corrupted_state_starts_from_zero(self, clock, notifier, settings):
        """Test unreadable timer data falls back to defaults"""
        store = InMemoryKeyValueStore({TIMER_KEY: "{not json"})
        engine = TimerEngine(store, clock, notifier, settings)

        status = engine.load()

        assert status.available_seconds == 0
        assert status.is_running is False

    def test_write_failure_keeps_memory_state(self, clock, notifier, settings):
        """Test a failing store does not break the engine"""
        store = Mock()
        store.get.return_value = None
        store.set.side_effect = OSError("disk full")
        engine = TimerEngine(store, clock, notifier, settings)
        engine.load()

        assert engine.add_earned_time(60) == 60
        assert engine.get_available_time() == 60

    def test_notifier_failure_does_not_break_tick(self, timer, clock, notifier):
        """Test notifier errors are swallowed"""
        notifier.notify_time_depleted.side_effect = RuntimeError("no channel")
        timer.add_earned_time(10)
        timer.start()

        clock.advance(20)

        assert timer.tick().available_seconds == -10

    def test_reset(self, timer, notifier):
        """Test reset zeroes the balance and clears the notification"""
        timer.add_earned_time(500)
        timer.start()

        status = timer.reset()

        assert status.available_seconds == 0
        assert status.total_earned_seconds == 0
        assert status.is_running is False
        notifier.clear_timer_notification.assert_called_once()

    def test_listeners(self, timer):
        """Test listeners receive updates until unsubscribed"""
        received = []
        unsubscribe = timer.add_listener(received.append)

        timer.add_earned_time(30)
        assert received[-1].available_seconds == 30

        unsubscribe()
        timer.add_earned_time(30)
        assert len(received) == 1

    def test_listener_error_is_isolated(self, timer):
        """Test a failing listener does not stop other listeners"""
        received = []
        timer.add_listener(Mock(side_effect=ValueError("boom")))
        timer.add_listener(received.append)

        timer.add_earned_time(30)

        assert len(received) == 1

    def test_timer_notification_updated(self, timer, notifier):
        """Test the persistent timer notification follows the balance"""
        timer.add_earned_time(45)

        notifier.update_timer_notification.assert_called_with(45, False)


class TestTimeBalance:
    """Test TimeBalance serialization"""

    def test_from_data_defaults(self):
        """Test missing fields fall back to defaults"""
        balance = TimeBalance.from_data({})

        assert balance.available_seconds == 0
        assert balance.is_running is False

    def test_negative_total_clamped(self):
        """Test a negative earned total is clamped"""
        balance = TimeBalance.from_data({"available_seconds": -20, "total_earned_seconds": -5})

        assert balance.available_seconds == -20
        assert balance.total_earned_seconds == 0
