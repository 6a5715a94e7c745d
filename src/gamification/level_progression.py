"""
Level progression

Per-level, per-difficulty records for the level game. An attempt is a
0..100 percentage score; a difficulty is passed once a score reaches its
pass mark, and a level is completed when every difficulty it defines has
been passed. Passing is sticky: a later low score never un-passes.
"""

from datetime import datetime
from typing import Iterable, NamedTuple, Optional

from src.models.progress import DifficultyProgress, LevelProgress

MIN_LEVEL_SCORE = 0
MAX_LEVEL_SCORE = 100


class LevelAttemptOutcome(NamedTuple):
    passed: bool
    first_pass: bool
    is_new_high_score: bool
    level_completed: bool
    attempts: int
    high_score: int


def record_attempt(
    level: LevelProgress,
    difficulty_names: Iterable[str],
    difficulty_name: str,
    score: int,
    required_score: Optional[int],
    now: datetime,
) -> LevelAttemptOutcome:
    """
    Apply one scored attempt to a level record (mutates level)

    Args:
        level: The player's record for the level
        difficulty_names: Every difficulty the level currently defines
        difficulty_name: Difficulty that was played
        score: Percentage score, 0..100
        required_score: Pass mark; a difficulty without one passes on any score
        now: Completion timestamp if this attempt completes the level

    Returns:
        LevelAttemptOutcome; level_completed is True only on the attempt
        that completes the level
    """
    record = level.difficulties.setdefault(difficulty_name, DifficultyProgress())

    passed = score >= (required_score or MIN_LEVEL_SCORE)
    first_pass = passed and not record.passed
    is_new_high_score = record.attempts == 0 or score > record.high_score

    record.attempts += 1
    record.high_score = max(record.high_score, score)
    record.passed = record.passed or passed

    was_completed = level.is_completed
    level.is_completed = all(
        level.difficulties.get(name, DifficultyProgress()).passed for name in difficulty_names
    )
    level_completed = level.is_completed and not was_completed
    if level_completed and level.completed_at is None:
        level.completed_at = now

    return LevelAttemptOutcome(
        passed=passed,
        first_pass=first_pass,
        is_new_high_score=is_new_high_score,
        level_completed=level_completed,
        attempts=record.attempts,
        high_score=record.high_score,
    )


def level_view(level_id: str, level: LevelProgress) -> dict:
    return {
        "level_id": level_id,
        "is_completed": level.is_completed,
        "completed_at": level.completed_at.isoformat() if level.completed_at else None,
        "difficulties": {
            name: record.model_dump() for name, record in level.difficulties.items()
        },
    }
