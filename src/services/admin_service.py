"""
AdminService - Security notifications and account administration

Rate limit violations surface here as admin notifications. Callers are
responsible for the admin role check.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from src.config import VIOLATION_RETENTION_DAYS
from src.db.store import Store
from src.exceptions import RecordNotFoundError
from src.models.progress import PlayerProgress
from src.models.rate_limit import RateLimitViolation
from src.observability.metrics import sweeper_rows_deleted_total
from src.utils.datetime_helpers import Clock, default_clock, now_utc

logger = logging.getLogger(__name__)

# Upper bound on rows scanned for the 24h overview
OVERVIEW_SCAN_LIMIT = 10000


class AdminService:
    """Service for admin-only operations"""

    def __init__(self, store: Store, clock: Clock = default_clock):
        self.store = store
        self.clock = clock
        logger.debug("AdminService initialized")

    # ------------------------------------------------------------------
    # Violation notifications
    # ------------------------------------------------------------------

    async def list_violations(self, limit: int = 50, unread_only: bool = False) -> List[RateLimitViolation]:
        """Newest first"""
        limit = max(1, min(limit, 500))
        async with self.store.transaction() as tx:
            return await tx.list_violations(limit=limit, unread_only=unread_only)

    async def unread_count(self) -> int:
        async with self.store.transaction() as tx:
            return await tx.count_unread_violations()

    async def mark_read(self, violation_id: str) -> RateLimitViolation:
        """
        Mark one notification read

        Raises:
            RecordNotFoundError: Unknown violation id
        """
        async with self.store.transaction() as tx:
            violation = await tx.get_violation(violation_id)
            if violation is None:
                raise RecordNotFoundError(
                    message=f"Violation {violation_id} not found",
                    record_type="Violation",
                    record_id=violation_id,
                    operation="mark_read",
                )
            await tx.mark_violations_read([violation_id])
            violation.is_read = True
        return violation

    async def mark_all_read(self) -> int:
        async with self.store.transaction() as tx:
            changed = await tx.mark_violations_read()
        logger.info(f"Marked {changed} violation notifications read")
        return changed

    async def clear_old_violations(self, older_than_days: int = VIOLATION_RETENTION_DAYS) -> int:
        """Delete notifications older than the retention period"""
        cutoff = self.clock.now() - timedelta(days=older_than_days)
        async with self.store.transaction() as tx:
            deleted = await tx.delete_violations_before(cutoff)

        if deleted:
            sweeper_rows_deleted_total.labels(table="rate_limit_violations").inc(deleted)
            logger.info(f"Cleared {deleted} violation notifications older than {older_than_days} days")
        return deleted

    async def security_overview(self) -> Dict[str, Any]:
        """
        Last-24h summary for the admin dashboard

        Returns:
            {
                'violations_24h': int,
                'unique_players_affected': int,
                'violations_by_action': dict,
                'active_rate_limit_counters': int,   # touched in the last hour
                'unread_notifications': int
            }
        """
        now = self.clock.now()
        async with self.store.transaction() as tx:
            recent = await tx.list_violations(limit=OVERVIEW_SCAN_LIMIT, since=now - timedelta(days=1))
            active = await tx.count_rate_limit_counters_since(now - timedelta(hours=1))

        by_action: Dict[str, int] = {}
        for violation in recent:
            by_action[violation.action] = by_action.get(violation.action, 0) + 1

        players = {v.player_id for v in recent if v.player_id}

        return {
            "violations_24h": len(recent),
            "unique_players_affected": len(players),
            "violations_by_action": by_action,
            "active_rate_limit_counters": active,
            "unread_notifications": sum(1 for v in recent if not v.is_read),
        }

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def reset_player(self, player_id: str, reason: Optional[str] = None) -> PlayerProgress:
        """
        Zero a player's progress (the record is kept, not deleted)

        This is the only path on which XP, coins or unlocks go down.

        Raises:
            RecordNotFoundError: Player has no progress record
        """
        async with self.store.transaction() as tx:
            progress = await tx.get_progress(player_id)
            if progress is None:
                raise RecordNotFoundError(
                    message=f"Player {player_id} not found",
                    record_type="Player",
                    record_id=player_id,
                    operation="reset_player",
                )

            reset = PlayerProgress(
                player_id=player_id,
                created_at=progress.created_at,
                updated_at=now_utc(),
            )
            await tx.save_progress(reset)

        logger.warning(
            f"Admin reset player {player_id} (was {progress.xp} XP, {progress.coins} coins, "
            f"{len(progress.unlocked_artifacts)} artifacts). Reason: {reason or 'not given'}"
        )
        return reset
