"""
In-memory store

Single-writer, in-process implementation of the store interface for local
development and tests. One asyncio.Lock serializes transactions; the state
is snapshotted on entry and restored if the block raises, so a failed
operation leaves nothing behind.

Records are copied in and out so callers cannot mutate stored state
without going through save_*.
"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional, Tuple

from src.db.store import Store, StoreTransaction
from src.models.ordering import FamilyKey, OrderedSibling
from src.models.progress import PlayerProgress, PlayerSession
from src.models.rate_limit import RateLimitCounter, RateLimitViolation
from src.observability.metrics import store_transactions_total

logger = logging.getLogger(__name__)


@dataclass
class _State:
    progress: Dict[str, PlayerProgress] = field(default_factory=dict)
    sessions: Dict[str, PlayerSession] = field(default_factory=dict)
    counters: Dict[Tuple[str, str], RateLimitCounter] = field(default_factory=dict)
    violations: Dict[str, RateLimitViolation] = field(default_factory=dict)
    families: Dict[FamilyKey, Dict[str, OrderedSibling]] = field(default_factory=dict)


class MemoryTransaction(StoreTransaction):
    """Operates directly on the live state; the store handles rollback"""

    def __init__(self, state: _State):
        self._state = state

    # Player progress

    async def get_progress(self, player_id: str) -> Optional[PlayerProgress]:
        progress = self._state.progress.get(player_id)
        return progress.model_copy(deep=True) if progress else None

    async def insert_progress(self, progress: PlayerProgress) -> None:
        if progress.player_id in self._state.progress:
            return
        self._state.progress[progress.player_id] = progress.model_copy(deep=True)

    async def save_progress(self, progress: PlayerProgress) -> None:
        self._state.progress[progress.player_id] = progress.model_copy(deep=True)

    # Sessions

    async def get_session(self, token: str) -> Optional[PlayerSession]:
        session = self._state.sessions.get(token)
        return session.model_copy() if session else None

    async def save_session(self, session: PlayerSession) -> None:
        self._state.sessions[session.token] = session.model_copy()

    # Rate limiting

    async def get_rate_limit_counter(self, identifier: str, action: str) -> Optional[RateLimitCounter]:
        counter = self._state.counters.get((identifier, action))
        return counter.model_copy() if counter else None

    async def save_rate_limit_counter(self, counter: RateLimitCounter) -> None:
        self._state.counters[(counter.identifier, counter.action)] = counter.model_copy()

    async def delete_rate_limit_counters_before(self, cutoff: datetime) -> int:
        stale = [key for key, c in self._state.counters.items() if c.updated_at < cutoff]
        for key in stale:
            del self._state.counters[key]
        return len(stale)

    async def count_rate_limit_counters_since(self, since: datetime) -> int:
        return sum(1 for c in self._state.counters.values() if c.updated_at > since)

    async def find_recent_violation(
        self, action: str, identifier: str, since: datetime
    ) -> Optional[RateLimitViolation]:
        matches = [
            v for v in self._state.violations.values()
            if v.action == action and v.identifier == identifier and v.created_at > since
        ]
        if not matches:
            return None
        return max(matches, key=lambda v: v.created_at).model_copy()

    async def save_violation(self, violation: RateLimitViolation) -> None:
        self._state.violations[violation.id] = violation.model_copy()

    async def get_violation(self, violation_id: str) -> Optional[RateLimitViolation]:
        violation = self._state.violations.get(violation_id)
        return violation.model_copy() if violation else None

    async def list_violations(
        self,
        limit: int = 50,
        unread_only: bool = False,
        since: Optional[datetime] = None,
    ) -> List[RateLimitViolation]:
        rows = [
            v for v in self._state.violations.values()
            if (not unread_only or not v.is_read) and (since is None or v.created_at > since)
        ]
        rows.sort(key=lambda v: v.created_at, reverse=True)
        return [v.model_copy() for v in rows[:limit]]

    async def count_unread_violations(self) -> int:
        return sum(1 for v in self._state.violations.values() if not v.is_read)

    async def mark_violations_read(self, violation_ids: Optional[List[str]] = None) -> int:
        changed = 0
        for violation in self._state.violations.values():
            if violation.is_read:
                continue
            if violation_ids is not None and violation.id not in violation_ids:
                continue
            violation.is_read = True
            changed += 1
        return changed

    async def delete_violations_before(self, cutoff: datetime) -> int:
        stale = [vid for vid, v in self._state.violations.items() if v.created_at < cutoff]
        for vid in stale:
            del self._state.violations[vid]
        return len(stale)

    # Ordered content

    async def list_family(self, family: FamilyKey) -> List[OrderedSibling]:
        members = self._state.families.get(family, {})
        return [m.model_copy() for m in members.values()]

    async def add_family_member(self, sibling: OrderedSibling) -> None:
        self._state.families.setdefault(sibling.family, {})[sibling.member_id] = sibling.model_copy()

    async def update_orders(self, family: FamilyKey, orders: Dict[str, int]) -> None:
        members = self._state.families.get(family, {})
        for member_id, order in orders.items():
            if member_id in members:
                members[member_id].order = order


class MemoryStore(Store):
    """Process-local store with snapshot rollback"""

    def __init__(self):
        self._state = _State()
        self._lock = asyncio.Lock()
        logger.info("MemoryStore initialized - data is NOT persisted across restarts")

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[MemoryTransaction, None]:
        async with self._lock:
            snapshot = copy.deepcopy(self._state)
            try:
                yield MemoryTransaction(self._state)
            except BaseException:
                self._state = snapshot
                store_transactions_total.labels(backend="memory", status="rolled_back").inc()
                logger.debug("MemoryStore transaction rolled back")
                raise
            store_transactions_total.labels(backend="memory", status="committed").inc()
