"""
XP and Currency Ledger

Applies XP/coin deltas to a player's progress record and keeps artifact
unlocks in step with cumulative XP.

Rules:
- new_xp = max(0, xp + xp_delta), new_coins = max(0, coins + coins_delta)
- every artifact whose threshold is met is present afterwards
- artifacts are never removed, even if XP were to drop
- coin-earning calls may pass a ceiling that bounds one operation's gain

The ledger mutates the PlayerProgress it is given. Callers load that record
and save it back inside ONE store transaction, so XP, coins and unlocks are
never observably out of step.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from src.gamification.levels import LEVELS, LevelThreshold, calculate_level_from_xp, merge_unlocks
from src.models.progress import PlayerProgress
from src.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


@dataclass
class LedgerResult:
    """Outcome of one ledger application"""
    xp_applied: int
    coins_applied: int
    new_xp: int
    new_coins: int
    newly_unlocked: List[str] = field(default_factory=list)
    old_level: int = 1
    new_level: int = 1

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


def apply_delta(
    progress: PlayerProgress,
    xp_delta: int,
    coins_delta: int = 0,
    coin_ceiling: Optional[int] = None,
    table: List[LevelThreshold] = LEVELS,
) -> LedgerResult:
    """
    Apply an XP/coin delta and recompute unlocks

    Args:
        progress: Freshly read progress record (mutated in place)
        xp_delta: XP to add (negative only from admin tooling)
        coins_delta: Coins to add
        coin_ceiling: Upper bound on a single positive coin delta
        table: Level threshold table

    Returns:
        LedgerResult with the applied amounts and any newly unlocked artifacts
    """
    if coin_ceiling is not None and coins_delta > coin_ceiling:
        logger.warning(
            f"Coin delta {coins_delta} for player {progress.player_id} "
            f"exceeds per-operation ceiling {coin_ceiling}; capping"
        )
        coins_delta = coin_ceiling

    old_xp = progress.xp
    old_coins = progress.coins
    old_level = calculate_level_from_xp(old_xp, table)["current_level"]

    progress.xp = max(0, old_xp + xp_delta)
    progress.coins = max(0, old_coins + coins_delta)

    newly_unlocked = merge_unlocks(progress.xp, progress.unlocked_artifacts, table)
    if newly_unlocked:
        progress.unlocked_artifacts = progress.unlocked_artifacts + newly_unlocked
    progress.updated_at = now_utc()

    new_level = calculate_level_from_xp(progress.xp, table)["current_level"]

    logger.info(
        f"Applied {progress.xp - old_xp:+d} XP / {progress.coins - old_coins:+d} coins "
        f"to player {progress.player_id}. Total: {progress.xp} XP, {progress.coins} coins, "
        f"level {new_level}"
    )
    if newly_unlocked:
        logger.info(f"Player {progress.player_id} unlocked {', '.join(newly_unlocked)}")

    return LedgerResult(
        xp_applied=progress.xp - old_xp,
        coins_applied=progress.coins - old_coins,
        new_xp=progress.xp,
        new_coins=progress.coins,
        newly_unlocked=newly_unlocked,
        old_level=old_level,
        new_level=new_level,
    )


def sync_unlocks(progress: PlayerProgress, table: List[LevelThreshold] = LEVELS) -> List[str]:
    """
    Retroactively grant artifacts already earned by current XP

    Returns the artifacts added (empty when nothing was missing).
    """
    missing = merge_unlocks(progress.xp, progress.unlocked_artifacts, table)
    if missing:
        progress.unlocked_artifacts = progress.unlocked_artifacts + missing
        progress.updated_at = now_utc()
        logger.info(f"Retroactively unlocked {len(missing)} artifacts for player {progress.player_id}")
    return missing


def get_level_info(progress: PlayerProgress) -> dict:
    """Level summary for read endpoints"""
    info = calculate_level_from_xp(progress.xp)
    return {
        "player_id": progress.player_id,
        "total_xp": progress.xp,
        **info,
    }
