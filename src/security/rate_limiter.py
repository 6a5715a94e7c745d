"""
Per-action rate limiting

Fixed-window counters keyed by (identifier, action), where identifier is a
player id, a session token or a client IP. Counters live in the store, so
limits hold across processes.

Algorithm for check(action, identifier):
- no counter, or the window has elapsed: start a new window with count 1
- count already at the maximum: reject and record a violation
- otherwise: increment

The check runs in its OWN committed transaction, before the command it
guards. A rejected call therefore leaves exactly one trace, the violation
record, and an accepted call has consumed its slot even if the command
later fails.

Violations are coalesced: a repeat for the same (action, identifier)
within VIOLATION_COALESCE_SECONDS updates the existing record instead of
adding a new one, so a burst shows up as one admin notification.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import uuid4

from src.config import (
    RATE_LIMIT_RETENTION_MINUTES,
    VIOLATION_COALESCE_SECONDS,
)
from src.db.store import Store, StoreTransaction
from src.exceptions import RateLimitedError, ValidationError
from src.models.rate_limit import (
    RateLimitCounter,
    RateLimitPolicy,
    RateLimitResult,
    RateLimitViolation,
)
from src.observability.metrics import rate_limit_checks_total, rate_limit_violations_total
from src.utils.datetime_helpers import Clock, default_clock

logger = logging.getLogger(__name__)


# login and check_username budgets are spent by the auth service through the
# admin rate-limit endpoint; the rest guard this engine's own commands.
RATE_LIMITS: Dict[str, RateLimitPolicy] = {
    "login": RateLimitPolicy(max=5, window=timedelta(minutes=5)),
    "add_xp": RateLimitPolicy(max=20, window=timedelta(minutes=1)),
    "add_coins": RateLimitPolicy(max=20, window=timedelta(minutes=1)),
    "finish_game": RateLimitPolicy(max=30, window=timedelta(minutes=1)),
    "sync_progress": RateLimitPolicy(max=30, window=timedelta(minutes=1)),
    "mutation": RateLimitPolicy(max=100, window=timedelta(minutes=1)),
    "check_username": RateLimitPolicy(max=20, window=timedelta(minutes=1)),
}


def get_rate_limit_policy(action: str, policies: Optional[Dict[str, RateLimitPolicy]] = None) -> RateLimitPolicy:
    """Look up an action's budget; unknown actions are invalid input"""
    policy = (RATE_LIMITS if policies is None else policies).get(action)
    if policy is None:
        raise ValidationError(
            message=f"Unknown rate limit action: {action}",
            field="action",
            value=action,
        )
    return policy


class RateLimiter:
    """
    Store-backed fixed-window rate limiter

    Args:
        store: Transactional store holding counters and violations
        clock: Source of "now" (injectable for tests)
        policies: Action budgets (defaults to RATE_LIMITS)
    """

    def __init__(
        self,
        store: Store,
        clock: Clock = default_clock,
        policies: Optional[Dict[str, RateLimitPolicy]] = None,
        coalesce_seconds: int = VIOLATION_COALESCE_SECONDS,
    ):
        self.store = store
        self.clock = clock
        self.policies = policies if policies is not None else RATE_LIMITS
        self.coalesce_window = timedelta(seconds=coalesce_seconds)

    async def check(self, action: str, identifier: str, player_id: Optional[str] = None) -> RateLimitResult:
        """
        Consume one slot of the action's budget

        Returns:
            RateLimitResult(allowed=True, remaining, reset_at)

        Raises:
            ValidationError: Unknown action or empty identifier
            RateLimitedError: Budget exhausted for the current window
        """
        policy = get_rate_limit_policy(action, self.policies)
        if not identifier:
            raise ValidationError(message="Identifier is required", field="identifier", value=identifier)

        now = self.clock.now()
        rejected_counter: Optional[RateLimitCounter] = None

        async with self.store.transaction() as tx:
            counter = await tx.get_rate_limit_counter(identifier, action)

            if counter is None or now - counter.window_start >= policy.window:
                counter = RateLimitCounter(
                    identifier=identifier,
                    action=action,
                    window_start=now,
                    count=1,
                    updated_at=now,
                    player_id=player_id or (counter.player_id if counter else None),
                )
                await tx.save_rate_limit_counter(counter)
            elif counter.count >= policy.max:
                # Over-limit increment is never persisted; only the violation is
                await self._record_violation(tx, action, identifier, policy, counter, player_id, now)
                rejected_counter = counter
            else:
                counter.count += 1
                counter.updated_at = now
                if player_id:
                    counter.player_id = player_id
                await tx.save_rate_limit_counter(counter)

        reset_at = counter.window_start + policy.window

        if rejected_counter is not None:
            rate_limit_checks_total.labels(action=action, outcome="rejected").inc()
            retry_after = max(1, math.ceil((reset_at - now).total_seconds()))
            raise RateLimitedError(
                action=action,
                limit=policy.max,
                retry_after_seconds=retry_after,
                identifier=identifier,
                player_id=player_id,
                operation="rate_limit_check",
            )

        rate_limit_checks_total.labels(action=action, outcome="allowed").inc()
        return RateLimitResult(
            allowed=True,
            remaining=max(0, policy.max - counter.count),
            reset_at=reset_at,
        )

    async def _record_violation(
        self,
        tx: StoreTransaction,
        action: str,
        identifier: str,
        policy: RateLimitPolicy,
        counter: RateLimitCounter,
        player_id: Optional[str],
        now: datetime,
    ) -> RateLimitViolation:
        recent = await tx.find_recent_violation(action, identifier, now - self.coalesce_window)

        if recent is not None:
            recent.count += 1
            recent.created_at = now
            recent.is_read = False
            await tx.save_violation(recent)
            rate_limit_violations_total.labels(action=action, kind="coalesced").inc()
            logger.debug(f"Coalesced rate limit violation {recent.id} ({action}/{identifier}): {recent.count}")
            return recent

        violation = RateLimitViolation(
            id=str(uuid4()),
            identifier=identifier,
            action=action,
            limit=policy.max,
            count=counter.count + 1,
            window_minutes=policy.window_minutes,
            created_at=now,
            player_id=player_id or counter.player_id,
        )
        await tx.save_violation(violation)
        rate_limit_violations_total.labels(action=action, kind="created").inc()
        logger.warning(
            f"Rate limit violation: {action} by {identifier} "
            f"(limit {policy.max} per {policy.window_minutes} min)"
        )
        return violation

    async def cleanup_expired(self, older_than: timedelta = timedelta(minutes=RATE_LIMIT_RETENTION_MINUTES)) -> int:
        """Delete counters not touched within older_than; returns rows deleted"""
        cutoff = self.clock.now() - older_than
        async with self.store.transaction() as tx:
            deleted = await tx.delete_rate_limit_counters_before(cutoff)

        if deleted:
            logger.info(f"Cleaned up {deleted} expired rate limit counters")
        return deleted
