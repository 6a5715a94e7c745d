"""Rate limit counter and violation queries"""
import logging
from datetime import datetime
from typing import List, Optional

import psycopg

from src.models.rate_limit import RateLimitCounter, RateLimitViolation

logger = logging.getLogger(__name__)

_VIOLATION_COLUMNS = 'id, identifier, action, "limit", count, window_minutes, created_at, is_read, player_id'


# ==========================================
# Counters
# ==========================================

async def select_counter_for_update(
    conn: psycopg.AsyncConnection, identifier: str, action: str
) -> Optional[RateLimitCounter]:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT identifier, action, window_start, count, updated_at, player_id
            FROM rate_limit_counters
            WHERE identifier = %s AND action = %s
            FOR UPDATE
            """,
            (identifier, action)
        )
        row = await cur.fetchone()

    return RateLimitCounter.model_validate(row) if row else None


async def upsert_counter(conn: psycopg.AsyncConnection, counter: RateLimitCounter) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO rate_limit_counters (identifier, action, window_start, count, updated_at, player_id)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (identifier, action) DO UPDATE
            SET window_start = EXCLUDED.window_start,
                count = EXCLUDED.count,
                updated_at = EXCLUDED.updated_at,
                player_id = COALESCE(EXCLUDED.player_id, rate_limit_counters.player_id)
            """,
            (
                counter.identifier,
                counter.action,
                counter.window_start,
                counter.count,
                counter.updated_at,
                counter.player_id,
            )
        )


async def delete_counters_before(conn: psycopg.AsyncConnection, cutoff: datetime) -> int:
    async with conn.cursor() as cur:
        await cur.execute("DELETE FROM rate_limit_counters WHERE updated_at < %s", (cutoff,))
        return cur.rowcount


async def count_counters_since(conn: psycopg.AsyncConnection, since: datetime) -> int:
    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT COUNT(*) AS total FROM rate_limit_counters WHERE updated_at > %s",
            (since,)
        )
        row = await cur.fetchone()
    return row["total"] if row else 0


# ==========================================
# Violations
# ==========================================

async def select_recent_violation(
    conn: psycopg.AsyncConnection, action: str, identifier: str, since: datetime
) -> Optional[RateLimitViolation]:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {_VIOLATION_COLUMNS}
            FROM rate_limit_violations
            WHERE action = %s AND identifier = %s AND created_at > %s
            ORDER BY created_at DESC
            LIMIT 1
            FOR UPDATE
            """,
            (action, identifier, since)
        )
        row = await cur.fetchone()

    return RateLimitViolation.model_validate(row) if row else None


async def upsert_violation(conn: psycopg.AsyncConnection, violation: RateLimitViolation) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO rate_limit_violations ({_VIOLATION_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET count = EXCLUDED.count,
                created_at = EXCLUDED.created_at,
                is_read = EXCLUDED.is_read
            """,
            (
                violation.id,
                violation.identifier,
                violation.action,
                violation.limit,
                violation.count,
                violation.window_minutes,
                violation.created_at,
                violation.is_read,
                violation.player_id,
            )
        )


async def select_violation(conn: psycopg.AsyncConnection, violation_id: str) -> Optional[RateLimitViolation]:
    async with conn.cursor() as cur:
        await cur.execute(
            f"SELECT {_VIOLATION_COLUMNS} FROM rate_limit_violations WHERE id = %s",
            (violation_id,)
        )
        row = await cur.fetchone()

    return RateLimitViolation.model_validate(row) if row else None


async def select_violations(
    conn: psycopg.AsyncConnection,
    limit: int = 50,
    unread_only: bool = False,
    since: Optional[datetime] = None,
) -> List[RateLimitViolation]:
    """Newest first"""
    conditions = []
    params: list = []
    if unread_only:
        conditions.append("is_read = FALSE")
    if since is not None:
        conditions.append("created_at > %s")
        params.append(since)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    params.append(limit)

    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {_VIOLATION_COLUMNS}
            FROM rate_limit_violations
            {where}
            ORDER BY created_at DESC
            LIMIT %s
            """,
            tuple(params)
        )
        rows = await cur.fetchall()

    return [RateLimitViolation.model_validate(row) for row in rows]


async def count_unread(conn: psycopg.AsyncConnection) -> int:
    async with conn.cursor() as cur:
        await cur.execute("SELECT COUNT(*) AS total FROM rate_limit_violations WHERE is_read = FALSE")
        row = await cur.fetchone()
    return row["total"] if row else 0


async def mark_read(conn: psycopg.AsyncConnection, violation_ids: Optional[List[str]] = None) -> int:
    async with conn.cursor() as cur:
        if violation_ids is None:
            await cur.execute("UPDATE rate_limit_violations SET is_read = TRUE WHERE is_read = FALSE")
        else:
            await cur.execute(
                "UPDATE rate_limit_violations SET is_read = TRUE WHERE is_read = FALSE AND id = ANY(%s)",
                (list(violation_ids),)
            )
        return cur.rowcount


async def delete_violations_before(conn: psycopg.AsyncConnection, cutoff: datetime) -> int:
    async with conn.cursor() as cur:
        await cur.execute("DELETE FROM rate_limit_violations WHERE created_at < %s", (cutoff,))
        return cur.rowcount
