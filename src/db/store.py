"""
Transactional store interface

Every engine operation runs as ONE transaction:

    async with store.transaction() as tx:
        progress = await tx.get_progress(player_id)
        ...
        await tx.save_progress(progress)

Reads inside a transaction see a consistent snapshot and rows read for
update stay locked until commit, so deltas are always computed from a
freshly read base. Leaving the block with an exception rolls everything back.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Dict, List, Optional

from src.models.ordering import FamilyKey, OrderedSibling
from src.models.progress import PlayerProgress, PlayerSession
from src.models.rate_limit import RateLimitCounter, RateLimitViolation


class StoreTransaction(ABC):
    """Operations available inside one transaction"""

    # Player progress
    @abstractmethod
    async def get_progress(self, player_id: str) -> Optional[PlayerProgress]:
        """Read (and lock) a player's progress record"""

    @abstractmethod
    async def insert_progress(self, progress: PlayerProgress) -> None:
        """Insert a zeroed record; no-op if the player already has one"""

    @abstractmethod
    async def save_progress(self, progress: PlayerProgress) -> None:
        ...

    # Sessions
    @abstractmethod
    async def get_session(self, token: str) -> Optional[PlayerSession]:
        ...

    @abstractmethod
    async def save_session(self, session: PlayerSession) -> None:
        ...

    # Rate limiting
    @abstractmethod
    async def get_rate_limit_counter(self, identifier: str, action: str) -> Optional[RateLimitCounter]:
        """Read (and lock) the counter for (identifier, action)"""

    @abstractmethod
    async def save_rate_limit_counter(self, counter: RateLimitCounter) -> None:
        """Insert or update the counter for (identifier, action)"""

    @abstractmethod
    async def delete_rate_limit_counters_before(self, cutoff: datetime) -> int:
        ...

    @abstractmethod
    async def count_rate_limit_counters_since(self, since: datetime) -> int:
        ...

    @abstractmethod
    async def find_recent_violation(
        self, action: str, identifier: str, since: datetime
    ) -> Optional[RateLimitViolation]:
        ...

    @abstractmethod
    async def save_violation(self, violation: RateLimitViolation) -> None:
        """Insert or update a violation by id"""

    @abstractmethod
    async def get_violation(self, violation_id: str) -> Optional[RateLimitViolation]:
        ...

    @abstractmethod
    async def list_violations(
        self,
        limit: int = 50,
        unread_only: bool = False,
        since: Optional[datetime] = None,
    ) -> List[RateLimitViolation]:
        """Newest first"""

    @abstractmethod
    async def count_unread_violations(self) -> int:
        ...

    @abstractmethod
    async def mark_violations_read(self, violation_ids: Optional[List[str]] = None) -> int:
        """Mark the given (or all unread) violations read; returns rows changed"""

    @abstractmethod
    async def delete_violations_before(self, cutoff: datetime) -> int:
        ...

    # Ordered content
    @abstractmethod
    async def list_family(self, family: FamilyKey) -> List[OrderedSibling]:
        """Read (and lock) all siblings of a family"""

    @abstractmethod
    async def add_family_member(self, sibling: OrderedSibling) -> None:
        ...

    @abstractmethod
    async def update_orders(self, family: FamilyKey, orders: Dict[str, int]) -> None:
        """Write order values for the given members of a family"""


class Store(ABC):
    """Factory for transactions"""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        ...

    async def open(self) -> None:
        """Acquire resources (pools, schema)"""

    async def close(self) -> None:
        """Release resources"""
