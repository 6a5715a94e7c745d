"""Game mode models for the daily games"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class GameMode(str, Enum):
    """Daily-gated game modes"""
    WORDLE = "wordle"
    WORD_FINDER_EASY = "word_finder_easy"
    WORD_FINDER_HARD = "word_finder_hard"
    LET_EM_COOK = "let_em_cook"
    GK_COMPETITIVE = "gk_competitive"
    FLAG_CHAMPS = "flag_champs"
    EXPLORER = "explorer"


class GameKind(str, Enum):
    """How results for a mode arrive"""
    SESSION = "session"  # one atomic end-of-game submission
    BATCH = "batch"      # periodic background sync of many small answers


class DailyPolicy(BaseModel):
    """Per-mode daily gating rules"""
    mode: GameMode
    kind: GameKind
    max_attempts_per_day: Optional[int] = None  # session modes
    total_items: Optional[int] = None           # batch modes: today's set is complete at this size


class BatchPolicy(BaseModel):
    """Reward bounds for a batch-synced mode"""
    xp_per_correct: int
    xp_per_incorrect: int
    coins_per_correct: int


class BatchAttempt(BaseModel):
    """One answered item inside a batch sync"""
    id: str
    correct: bool


DAILY_POLICIES: dict[GameMode, DailyPolicy] = {
    GameMode.WORDLE: DailyPolicy(mode=GameMode.WORDLE, kind=GameKind.SESSION, max_attempts_per_day=1),
    GameMode.WORD_FINDER_EASY: DailyPolicy(
        mode=GameMode.WORD_FINDER_EASY, kind=GameKind.SESSION, max_attempts_per_day=2
    ),
    GameMode.WORD_FINDER_HARD: DailyPolicy(
        mode=GameMode.WORD_FINDER_HARD, kind=GameKind.SESSION, max_attempts_per_day=1
    ),
    GameMode.LET_EM_COOK: DailyPolicy(mode=GameMode.LET_EM_COOK, kind=GameKind.SESSION, max_attempts_per_day=1),
    GameMode.GK_COMPETITIVE: DailyPolicy(
        mode=GameMode.GK_COMPETITIVE, kind=GameKind.SESSION, max_attempts_per_day=1
    ),
    # 195 flags, 28 states + 8 union territories
    GameMode.FLAG_CHAMPS: DailyPolicy(mode=GameMode.FLAG_CHAMPS, kind=GameKind.BATCH, total_items=195),
    GameMode.EXPLORER: DailyPolicy(mode=GameMode.EXPLORER, kind=GameKind.BATCH, total_items=36),
}

BATCH_POLICIES: dict[GameMode, BatchPolicy] = {
    GameMode.FLAG_CHAMPS: BatchPolicy(xp_per_correct=5, xp_per_incorrect=1, coins_per_correct=2),
    GameMode.EXPLORER: BatchPolicy(xp_per_correct=10, xp_per_incorrect=0, coins_per_correct=5),
}


def get_policy(mode: GameMode) -> DailyPolicy:
    return DAILY_POLICIES[mode]
