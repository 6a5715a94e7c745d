"""
Daily Eligibility Gate

Per (player, mode) state machine:

    Available -> Consumed -> (day rolls over) -> Available

There is no reset job. Every read compares the stored last_played_day with
today's day key; a mismatch means the quota has implicitly reset and every
daily marker reads as zero, whatever value is still stored.

Session modes allow max_attempts_per_day plays. Batch modes stay available
until today's answered set covers every item.
"""

from typing import Dict, Any
import logging

from src.exceptions import AlreadyCompletedTodayError
from src.models.game import DailyPolicy, GameKind
from src.models.progress import GameState
from src.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


def is_current(state: GameState, clock: Clock) -> bool:
    """True when the stored daily markers belong to today"""
    return clock.is_today(state.last_played_day)


def attempts_today(state: GameState, clock: Clock) -> int:
    return state.attempts_today if is_current(state, clock) else 0


def guessed_today(state: GameState, clock: Clock) -> list[str]:
    return list(state.guessed_today) if is_current(state, clock) else []


def is_available(state: GameState, policy: DailyPolicy, clock: Clock) -> bool:
    """Can the player start (or keep syncing) this mode today?"""
    if policy.kind == GameKind.BATCH:
        return len(guessed_today(state, clock)) < policy.total_items
    return attempts_today(state, clock) < policy.max_attempts_per_day


def require_available(state: GameState, policy: DailyPolicy, clock: Clock, player_id: str = None) -> None:
    """Raise AlreadyCompletedTodayError when today's quota is used up"""
    if not is_available(state, policy, clock):
        raise AlreadyCompletedTodayError(
            message=f"{policy.mode.value} already completed for {clock.today()}",
            mode=policy.mode.value,
            day_key=clock.today(),
            player_id=player_id,
            operation="daily_gate",
        )


def reset_if_new_day(state: GameState, clock: Clock) -> bool:
    """
    Zero the daily markers when the stored day is not today

    Returns True if a reset happened. Lifetime counters are untouched.
    """
    today = clock.today()
    if state.last_played_day == today:
        return False

    state.last_played_day = today
    state.attempts_today = 0
    state.guessed_today = []
    state.correct_today = 0
    state.daily_xp = 0
    state.daily_score = 0
    return True


def record_play(state: GameState, clock: Clock) -> int:
    """
    Stamp a finished session for today

    Sets last_played_day to today and either increments attempts_today
    (same day) or resets it before incrementing (day changed).

    Returns the new attempts_today.
    """
    reset_if_new_day(state, clock)
    state.attempts_today += 1
    return state.attempts_today


def mark_hint_used(state: GameState, clock: Clock) -> None:
    state.hint_used_day = clock.today()


def hint_used_today(state: GameState, clock: Clock) -> bool:
    return clock.is_today(state.hint_used_day)


def daily_view(state: GameState, policy: DailyPolicy, clock: Clock) -> Dict[str, Any]:
    """
    Today's progress for one mode (stale days read as empty)

    Returns:
        {
            'day_key': str,
            'available': bool,
            'attempts_today': int,
            'attempts_remaining': int | None,
            'guessed_today': list[str],
            'correct_today': int,
            'daily_xp': int,
            'daily_score': int,
            'hint_used_today': bool,
            'is_completed_today': bool
        }
    """
    current = is_current(state, clock)
    attempts = attempts_today(state, clock)
    guessed = guessed_today(state, clock)
    available = is_available(state, policy, clock)

    remaining = None
    if policy.kind == GameKind.SESSION:
        remaining = max(0, policy.max_attempts_per_day - attempts)

    return {
        "day_key": clock.today(),
        "available": available,
        "attempts_today": attempts,
        "attempts_remaining": remaining,
        "guessed_today": guessed,
        "correct_today": state.correct_today if current else 0,
        "daily_xp": state.daily_xp if current else 0,
        "daily_score": state.daily_score if current else 0,
        "hint_used_today": hint_used_today(state, clock),
        "is_completed_today": not available,
    }
