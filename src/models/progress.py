"""Player progression models"""
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

from src.models.game import GameMode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameState(BaseModel):
    """
    Per-mode state stored inside a player's progress record

    Daily markers are only meaningful while last_played_day is today;
    readers must go through the daily gate, which treats a stale day as zero.
    """
    # Daily markers
    last_played_day: Optional[str] = None
    attempts_today: int = 0
    hint_used_day: Optional[str] = None
    guessed_today: list[str] = Field(default_factory=list)
    correct_today: int = 0
    daily_xp: int = 0
    daily_score: int = 0

    # Lifetime counters
    games_played: int = 0
    games_won: int = 0
    correct_answers: int = 0
    current_streak: int = 0
    max_streak: int = 0
    best_score: int = 0
    completions: int = 0
    total_xp_earned: int = 0
    total_coins_earned: int = 0
    guess_distribution: list[int] = Field(default_factory=lambda: [0, 0, 0, 0, 0, 0])


class DifficultyProgress(BaseModel):
    """A player's record on one difficulty of a level"""
    high_score: int = 0
    passed: bool = False
    attempts: int = 0


class LevelProgress(BaseModel):
    """
    A player's record on one level

    passed only ever turns on; is_completed once every difficulty is passed.
    """
    difficulties: dict[str, DifficultyProgress] = Field(default_factory=dict)
    is_completed: bool = False
    completed_at: Optional[datetime] = None


class GrammarProgress(BaseModel):
    """Resumable grammar detective stats (not daily gated)"""
    questions_answered: int = 0
    correct_answers: int = 0
    total_xp_earned: int = 0
    current_question_index: int = 0


class PlayerProgress(BaseModel):
    """
    Single source of truth for a player's XP, currency and unlocks

    Invariants:
    - xp and coins never decrease except through an admin reset
    - unlocked_artifacts only grows
    """
    player_id: str
    xp: int = 0
    coins: int = 0
    unlocked_artifacts: list[str] = Field(default_factory=list)
    login_streak: int = 0
    last_login_day: Optional[str] = None
    games: dict[GameMode, GameState] = Field(default_factory=dict)
    levels: dict[str, LevelProgress] = Field(default_factory=dict)
    grammar: GrammarProgress = Field(default_factory=GrammarProgress)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def game(self, mode: GameMode) -> GameState:
        """Get (creating if needed) the state for one mode"""
        if mode not in self.games:
            self.games[mode] = GameState()
        return self.games[mode]


class PlayerSession(BaseModel):
    """Session issued by the auth collaborator; only read here"""
    token: str
    player_id: str
    expires_at: datetime
