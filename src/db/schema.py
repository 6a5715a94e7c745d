"""Database schema, applied idempotently on startup"""
import logging

import psycopg

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS player_progress (
        player_id TEXT PRIMARY KEY,
        xp INTEGER NOT NULL DEFAULT 0 CHECK (xp >= 0),
        coins INTEGER NOT NULL DEFAULT 0 CHECK (coins >= 0),
        unlocked_artifacts JSONB NOT NULL DEFAULT '[]'::jsonb,
        login_streak INTEGER NOT NULL DEFAULT 0,
        last_login_day TEXT,
        games JSONB NOT NULL DEFAULT '{}'::jsonb,
        levels JSONB NOT NULL DEFAULT '{}'::jsonb,
        grammar JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS player_sessions (
        token TEXT PRIMARY KEY,
        player_id TEXT NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rate_limit_counters (
        identifier TEXT NOT NULL,
        action TEXT NOT NULL,
        window_start TIMESTAMPTZ NOT NULL,
        count INTEGER NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL,
        player_id TEXT,
        PRIMARY KEY (identifier, action)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_rate_limit_counters_updated ON rate_limit_counters (updated_at)",
    """
    CREATE TABLE IF NOT EXISTS rate_limit_violations (
        id TEXT PRIMARY KEY,
        identifier TEXT NOT NULL,
        action TEXT NOT NULL,
        "limit" INTEGER NOT NULL,
        count INTEGER NOT NULL,
        window_minutes INTEGER NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        is_read BOOLEAN NOT NULL DEFAULT FALSE,
        player_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_violations_created ON rate_limit_violations (created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_violations_action_identifier ON rate_limit_violations (action, identifier)",
    """
    CREATE TABLE IF NOT EXISTS content_order (
        family_kind TEXT NOT NULL,
        family_scope TEXT NOT NULL DEFAULT '',
        member_id TEXT NOT NULL,
        sort_order INTEGER NOT NULL,
        required_score INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (family_kind, family_scope, member_id)
    )
    """,
    # Columns added after the first release
    "ALTER TABLE player_progress ADD COLUMN IF NOT EXISTS levels JSONB NOT NULL DEFAULT '{}'::jsonb",
    "ALTER TABLE player_progress ADD COLUMN IF NOT EXISTS grammar JSONB NOT NULL DEFAULT '{}'::jsonb",
    "ALTER TABLE content_order ADD COLUMN IF NOT EXISTS required_score INTEGER",
]


async def apply_schema(conn: psycopg.AsyncConnection) -> None:
    """Create tables and indexes that do not exist yet"""
    async with conn.cursor() as cur:
        for statement in SCHEMA_STATEMENTS:
            await cur.execute(statement)
    logger.info(f"Schema applied ({len(SCHEMA_STATEMENTS)} statements)")
