"""Unit tests for Streak System (src/gamification/streak_system.py)"""
from src.gamification.streak_system import update_login_streak, update_win_streak
from src.models.progress import GameState, PlayerProgress


# ============================================================================
# Login Streak Tests
# ============================================================================

def test_first_open_starts_streak(clock):
    progress = PlayerProgress(player_id="child-123")

    result = update_login_streak(progress, clock)

    assert result["current_streak"] == 1
    assert result["changed"] is True
    assert result["streak_reset"] is False
    assert progress.last_login_day == "2024-03-15"


def test_open_yesterday_continues_streak(clock):
    progress = PlayerProgress(player_id="child-123", login_streak=6, last_login_day="2024-03-14")

    result = update_login_streak(progress, clock)

    assert result["current_streak"] == 7
    assert result["milestone_reached"] is True


def test_same_day_open_is_noop(clock):
    progress = PlayerProgress(player_id="child-123", login_streak=3, last_login_day="2024-03-15")

    result = update_login_streak(progress, clock)

    assert result["current_streak"] == 3
    assert result["changed"] is False


def test_gap_resets_streak(clock):
    progress = PlayerProgress(player_id="child-123", login_streak=12, last_login_day="2024-03-10")

    result = update_login_streak(progress, clock)

    assert result["current_streak"] == 1
    assert result["streak_reset"] is True


def test_streak_follows_home_region_midnight(clock):
    progress = PlayerProgress(player_id="child-123")
    update_login_streak(progress, clock)

    # 06:00 UTC + 12h31m = 18:31 UTC, just past home-region midnight
    clock.advance(hours=12, minutes=31)
    result = update_login_streak(progress, clock)

    assert result["current_streak"] == 2


# ============================================================================
# Win Streak Tests
# ============================================================================

def test_win_streak_tracks_max():
    state = GameState()
    update_win_streak(state, True)
    update_win_streak(state, True)
    update_win_streak(state, True)

    assert update_win_streak(state, False) == 0
    assert state.max_streak == 3

    assert update_win_streak(state, True) == 1
    assert state.max_streak == 3
