"""Unit tests for the daily eligibility gate and day keys"""
from datetime import datetime, timezone

import pytest

from src.exceptions import AlreadyCompletedTodayError
from src.gamification import daily_gate
from src.models.game import GameMode, get_policy
from src.models.progress import GameState
from src.utils.datetime_helpers import Clock, FixedClock


# ============================================================================
# Clock Tests
# ============================================================================

def test_day_key_uses_home_region_offset():
    # 18:29 UTC is 23:59 at UTC+05:30
    clock = FixedClock(datetime(2024, 3, 15, 18, 29, tzinfo=timezone.utc))
    assert clock.today() == "2024-03-15"

    clock.advance(minutes=1)
    assert clock.today() == "2024-03-16"
    assert clock.is_yesterday("2024-03-15")


def test_day_key_ignores_device_timezone():
    """Naive instants are read as UTC"""
    clock = Clock(now_fn=lambda: datetime(2024, 3, 15, 20, 0))
    assert clock.today() == "2024-03-16"


def test_day_start_and_seconds_until_reset(clock):
    assert clock.day_start_utc("2024-03-16") == datetime(2024, 3, 15, 18, 30, tzinfo=timezone.utc)
    # 06:00 UTC -> reset at 18:30 UTC
    assert clock.seconds_until_reset() == 12 * 3600 + 30 * 60


# ============================================================================
# Eligibility Tests
# ============================================================================

def test_fresh_state_is_available(clock):
    assert daily_gate.is_available(GameState(), get_policy(GameMode.WORDLE), clock) is True


def test_stale_day_reads_as_zero(clock):
    """A previous day's markers never block today, whatever their values"""
    state = GameState(
        last_played_day="2024-03-14",
        attempts_today=5,
        guessed_today=["a", "b"],
        correct_today=7,
        daily_xp=90,
    )
    policy = get_policy(GameMode.WORDLE)

    assert daily_gate.is_available(state, policy, clock) is True
    assert daily_gate.attempts_today(state, clock) == 0

    view = daily_gate.daily_view(state, policy, clock)
    assert view["attempts_today"] == 0
    assert view["guessed_today"] == []
    assert view["correct_today"] == 0
    assert view["daily_xp"] == 0
    assert view["is_completed_today"] is False


def test_single_attempt_mode_consumed(clock):
    state = GameState()
    policy = get_policy(GameMode.WORDLE)

    assert daily_gate.record_play(state, clock) == 1
    assert state.last_played_day == "2024-03-15"
    assert daily_gate.is_available(state, policy, clock) is False

    with pytest.raises(AlreadyCompletedTodayError) as exc_info:
        daily_gate.require_available(state, policy, clock, "child-123")
    assert exc_info.value.mode == "wordle"
    assert exc_info.value.day_key == "2024-03-15"


def test_two_attempt_mode(clock):
    state = GameState()
    policy = get_policy(GameMode.WORD_FINDER_EASY)

    daily_gate.record_play(state, clock)
    assert daily_gate.is_available(state, policy, clock) is True
    assert daily_gate.daily_view(state, policy, clock)["attempts_remaining"] == 1

    daily_gate.record_play(state, clock)
    assert daily_gate.is_available(state, policy, clock) is False


def test_record_play_after_rollover_resets_to_one(clock):
    state = GameState()
    daily_gate.record_play(state, clock)
    daily_gate.record_play(state, clock)

    clock.advance(days=1)

    assert daily_gate.record_play(state, clock) == 1
    assert state.last_played_day == "2024-03-16"


def test_consumed_becomes_available_next_day(clock):
    state = GameState()
    policy = get_policy(GameMode.WORD_FINDER_HARD)
    daily_gate.record_play(state, clock)
    assert daily_gate.is_available(state, policy, clock) is False

    clock.advance(days=1)

    assert daily_gate.is_available(state, policy, clock) is True


def test_batch_mode_available_until_set_complete(clock):
    policy = get_policy(GameMode.EXPLORER)
    state = GameState(last_played_day=clock.today(), guessed_today=[f"s{i}" for i in range(35)])
    assert daily_gate.is_available(state, policy, clock) is True

    state.guessed_today.append("s35")
    assert daily_gate.is_available(state, policy, clock) is False
    assert daily_gate.daily_view(state, policy, clock)["attempts_remaining"] is None


def test_reset_if_new_day_keeps_lifetime_counters(clock):
    state = GameState(last_played_day="2024-03-14", correct_today=4, games_played=9, best_score=30)

    assert daily_gate.reset_if_new_day(state, clock) is True
    assert state.correct_today == 0
    assert state.games_played == 9
    assert state.best_score == 30
    assert daily_gate.reset_if_new_day(state, clock) is False


def test_hint_marker_expires_at_rollover(clock):
    state = GameState()
    daily_gate.mark_hint_used(state, clock)
    assert daily_gate.hint_used_today(state, clock) is True

    clock.advance(days=1)

    assert daily_gate.hint_used_today(state, clock) is False
