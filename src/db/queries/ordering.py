"""Ordered content queries"""
import logging
from typing import Dict, List

import psycopg

from src.models.ordering import FamilyKey, OrderedSibling

logger = logging.getLogger(__name__)


async def select_family_for_update(conn: psycopg.AsyncConnection, family: FamilyKey) -> List[OrderedSibling]:
    """All siblings of a family, locked so concurrent reorders serialize"""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT member_id, sort_order, created_at, required_score
            FROM content_order
            WHERE family_kind = %s AND family_scope = %s
            FOR UPDATE
            """,
            (family.kind.value, family.scope)
        )
        rows = await cur.fetchall()

    return [
        OrderedSibling(
            member_id=row["member_id"],
            family=family,
            order=row["sort_order"],
            created_at=row["created_at"],
            required_score=row["required_score"],
        )
        for row in rows
    ]


async def insert_member(conn: psycopg.AsyncConnection, sibling: OrderedSibling) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO content_order (family_kind, family_scope, member_id, sort_order, created_at, required_score)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (family_kind, family_scope, member_id) DO UPDATE
            SET sort_order = EXCLUDED.sort_order,
                required_score = EXCLUDED.required_score
            """,
            (
                sibling.family.kind.value,
                sibling.family.scope,
                sibling.member_id,
                sibling.order,
                sibling.created_at,
                sibling.required_score,
            )
        )


async def update_sort_orders(conn: psycopg.AsyncConnection, family: FamilyKey, orders: Dict[str, int]) -> None:
    if not orders:
        return

    async with conn.cursor() as cur:
        await cur.executemany(
            """
            UPDATE content_order
            SET sort_order = %s
            WHERE family_kind = %s AND family_scope = %s AND member_id = %s
            """,
            [(order, family.kind.value, family.scope, member_id) for member_id, order in orders.items()]
        )
