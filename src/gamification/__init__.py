"""
Progression rules for the daily games

This package holds the pure rules of the reward economy:
- Level thresholds and artifact unlocks
- XP/coin ledger
- Per-game reward formulas
- Anti-cheat clamping for batch syncs
- Daily eligibility gate and streaks
- Sibling ordering for admin content

Nothing here touches the store; services load and save records around it.
"""

from src.gamification.levels import calculate_level_from_xp, merge_unlocks
from src.gamification.xp_system import apply_delta, sync_unlocks
from src.gamification.anti_cheat import clamp
from src.gamification.ordering import plan_reorder

__all__ = [
    "calculate_level_from_xp",
    "merge_unlocks",
    "apply_delta",
    "sync_unlocks",
    "clamp",
    "plan_reorder",
]
