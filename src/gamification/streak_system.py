"""
Streak Tracking

- Login streak: consecutive home-region days on which the app was opened
- Win streak: consecutive wins in the word guess game

Day comparisons always go through the injected Clock so "yesterday" means
yesterday in the home region, not on the device.
"""

from typing import Dict, Any
import logging

from src.models.progress import GameState, PlayerProgress
from src.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)

STREAK_MILESTONES = (7, 14, 30, 100)


def update_login_streak(progress: PlayerProgress, clock: Clock) -> Dict[str, Any]:
    """
    Update the login streak when the app is opened

    Logic:
    - Already opened today: no change
    - Opened yesterday: continue streak
    - Any larger gap (or first open): reset to 1

    Returns:
        {
            'current_streak': int,
            'changed': bool,
            'streak_reset': bool,
            'milestone_reached': bool
        }
    """
    today = clock.today()
    last = progress.last_login_day

    if last == today:
        return {
            "current_streak": progress.login_streak,
            "changed": False,
            "streak_reset": False,
            "milestone_reached": False,
        }

    streak_reset = False
    if clock.is_yesterday(last):
        progress.login_streak += 1
    else:
        if last is not None:
            streak_reset = True
            logger.info(
                f"Player {progress.player_id} login streak broken. "
                f"Was {progress.login_streak}, last open {last}"
            )
        progress.login_streak = 1

    progress.last_login_day = today
    milestone = progress.login_streak in STREAK_MILESTONES

    logger.info(f"Player {progress.player_id} login streak: {progress.login_streak}")

    return {
        "current_streak": progress.login_streak,
        "changed": True,
        "streak_reset": streak_reset,
        "milestone_reached": milestone,
    }


def update_win_streak(state: GameState, won: bool) -> int:
    """Advance or break a game's win streak; returns the current streak"""
    if won:
        state.current_streak += 1
        state.max_streak = max(state.max_streak, state.current_streak)
    else:
        state.current_streak = 0
    return state.current_streak
