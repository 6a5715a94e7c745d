"""Player progress and session queries"""
import logging
from typing import Optional

import psycopg
from psycopg.types.json import Jsonb

from src.models.progress import PlayerProgress, PlayerSession

logger = logging.getLogger(__name__)

_PROGRESS_COLUMNS = (
    "player_id, xp, coins, unlocked_artifacts, login_streak, last_login_day, "
    "games, levels, grammar, created_at, updated_at"
)


def _games_json(progress: PlayerProgress) -> dict:
    return {mode.value: state.model_dump() for mode, state in progress.games.items()}


def _levels_json(progress: PlayerProgress) -> dict:
    return {level_id: level.model_dump(mode="json") for level_id, level in progress.levels.items()}


async def select_progress_for_update(conn: psycopg.AsyncConnection, player_id: str) -> Optional[PlayerProgress]:
    """
    Read a progress row and lock it until the transaction ends

    Concurrent writers for the same player queue on the row lock, so
    every delta is applied to the value the previous writer committed.
    """
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {_PROGRESS_COLUMNS}
            FROM player_progress
            WHERE player_id = %s
            FOR UPDATE
            """,
            (player_id,)
        )
        row = await cur.fetchone()

    return PlayerProgress.model_validate(row) if row else None


async def insert_progress(conn: psycopg.AsyncConnection, progress: PlayerProgress) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO player_progress ({_PROGRESS_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (player_id) DO NOTHING
            """,
            (
                progress.player_id,
                progress.xp,
                progress.coins,
                Jsonb(progress.unlocked_artifacts),
                progress.login_streak,
                progress.last_login_day,
                Jsonb(_games_json(progress)),
                Jsonb(_levels_json(progress)),
                Jsonb(progress.grammar.model_dump()),
                progress.created_at,
                progress.updated_at,
            )
        )
    logger.info(f"Created progress record for player {progress.player_id}")


async def update_progress(conn: psycopg.AsyncConnection, progress: PlayerProgress) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE player_progress
            SET xp = %s,
                coins = %s,
                unlocked_artifacts = %s,
                login_streak = %s,
                last_login_day = %s,
                games = %s,
                levels = %s,
                grammar = %s,
                updated_at = %s
            WHERE player_id = %s
            """,
            (
                progress.xp,
                progress.coins,
                Jsonb(progress.unlocked_artifacts),
                progress.login_streak,
                progress.last_login_day,
                Jsonb(_games_json(progress)),
                Jsonb(_levels_json(progress)),
                Jsonb(progress.grammar.model_dump()),
                progress.updated_at,
                progress.player_id,
            )
        )


async def select_session(conn: psycopg.AsyncConnection, token: str) -> Optional[PlayerSession]:
    async with conn.cursor() as cur:
        await cur.execute(
            "SELECT token, player_id, expires_at FROM player_sessions WHERE token = %s",
            (token,)
        )
        row = await cur.fetchone()

    return PlayerSession.model_validate(row) if row else None


async def upsert_session(conn: psycopg.AsyncConnection, session: PlayerSession) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO player_sessions (token, player_id, expires_at)
            VALUES (%s, %s, %s)
            ON CONFLICT (token) DO UPDATE
            SET player_id = EXCLUDED.player_id,
                expires_at = EXCLUDED.expires_at
            """,
            (session.token, session.player_id, session.expires_at)
        )
