"""
PostgreSQL store

Each transaction borrows one pooled connection and wraps it in
conn.transaction(). Reads that precede a write use SELECT ... FOR UPDATE.
psycopg errors are wrapped into the application's database exceptions.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional

import psycopg

from src.config import DATABASE_URL
from src.db import queries
from src.db.connection import Database
from src.db.schema import apply_schema
from src.db.store import Store, StoreTransaction
from src.exceptions import ProgressionError, wrap_external_exception
from src.models.ordering import FamilyKey, OrderedSibling
from src.models.progress import PlayerProgress, PlayerSession
from src.models.rate_limit import RateLimitCounter, RateLimitViolation
from src.observability.metrics import store_transactions_total

logger = logging.getLogger(__name__)


class PostgresTransaction(StoreTransaction):
    def __init__(self, conn: psycopg.AsyncConnection):
        self.conn = conn

    async def get_progress(self, player_id: str) -> Optional[PlayerProgress]:
        return await queries.select_progress_for_update(self.conn, player_id)

    async def insert_progress(self, progress: PlayerProgress) -> None:
        await queries.insert_progress(self.conn, progress)

    async def save_progress(self, progress: PlayerProgress) -> None:
        await queries.update_progress(self.conn, progress)

    async def get_session(self, token: str) -> Optional[PlayerSession]:
        return await queries.select_session(self.conn, token)

    async def save_session(self, session: PlayerSession) -> None:
        await queries.upsert_session(self.conn, session)

    async def get_rate_limit_counter(self, identifier: str, action: str) -> Optional[RateLimitCounter]:
        return await queries.select_counter_for_update(self.conn, identifier, action)

    async def save_rate_limit_counter(self, counter: RateLimitCounter) -> None:
        await queries.upsert_counter(self.conn, counter)

    async def delete_rate_limit_counters_before(self, cutoff: datetime) -> int:
        return await queries.delete_counters_before(self.conn, cutoff)

    async def count_rate_limit_counters_since(self, since: datetime) -> int:
        return await queries.count_counters_since(self.conn, since)

    async def find_recent_violation(
        self, action: str, identifier: str, since: datetime
    ) -> Optional[RateLimitViolation]:
        return await queries.select_recent_violation(self.conn, action, identifier, since)

    async def save_violation(self, violation: RateLimitViolation) -> None:
        await queries.upsert_violation(self.conn, violation)

    async def get_violation(self, violation_id: str) -> Optional[RateLimitViolation]:
        return await queries.select_violation(self.conn, violation_id)

    async def list_violations(
        self,
        limit: int = 50,
        unread_only: bool = False,
        since: Optional[datetime] = None,
    ) -> List[RateLimitViolation]:
        return await queries.select_violations(self.conn, limit, unread_only, since)

    async def count_unread_violations(self) -> int:
        return await queries.count_unread(self.conn)

    async def mark_violations_read(self, violation_ids: Optional[List[str]] = None) -> int:
        return await queries.mark_read(self.conn, violation_ids)

    async def delete_violations_before(self, cutoff: datetime) -> int:
        return await queries.delete_violations_before(self.conn, cutoff)

    async def list_family(self, family: FamilyKey) -> List[OrderedSibling]:
        return await queries.select_family_for_update(self.conn, family)

    async def add_family_member(self, sibling: OrderedSibling) -> None:
        await queries.insert_member(self.conn, sibling)

    async def update_orders(self, family: FamilyKey, orders: Dict[str, int]) -> None:
        await queries.update_sort_orders(self.conn, family, orders)


class PostgresStore(Store):
    def __init__(self, connection_string: str = DATABASE_URL, database: Optional[Database] = None):
        self.db = database or Database(connection_string)

    async def open(self) -> None:
        await self.db.init_pool()
        async with self.db.transaction() as conn:
            await apply_schema(conn)

    async def close(self) -> None:
        await self.db.close_pool()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[PostgresTransaction, None]:
        try:
            async with self.db.transaction() as conn:
                yield PostgresTransaction(conn)
        except ProgressionError:
            store_transactions_total.labels(backend="postgres", status="rolled_back").inc()
            raise
        except psycopg.Error as e:
            store_transactions_total.labels(backend="postgres", status="rolled_back").inc()
            raise wrap_external_exception(e, operation="store_transaction")
        store_transactions_total.labels(backend="postgres", status="committed").inc()
