"""
Database queries

Raw SQL, one module per aggregate. Every function takes the connection of
the surrounding transaction so callers decide the transaction boundary.

Module organization:
- progress.py: Player progress records and sessions
- rate_limits.py: Rate limit counters and violations
- ordering.py: Ordered content families
"""

from src.db.queries.progress import (
    select_progress_for_update,
    insert_progress,
    update_progress,
    select_session,
    upsert_session,
)

from src.db.queries.rate_limits import (
    select_counter_for_update,
    upsert_counter,
    delete_counters_before,
    count_counters_since,
    select_recent_violation,
    upsert_violation,
    select_violation,
    select_violations,
    count_unread,
    mark_read,
    delete_violations_before,
)

from src.db.queries.ordering import (
    select_family_for_update,
    insert_member,
    update_sort_orders,
)

__all__ = [
    "select_progress_for_update",
    "insert_progress",
    "update_progress",
    "select_session",
    "upsert_session",
    "select_counter_for_update",
    "upsert_counter",
    "delete_counters_before",
    "count_counters_since",
    "select_recent_violation",
    "upsert_violation",
    "select_violation",
    "select_violations",
    "count_unread",
    "mark_read",
    "delete_violations_before",
    "select_family_for_update",
    "insert_member",
    "update_sort_orders",
]
