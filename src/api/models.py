"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime

from src.models.ordering import Direction, FamilyKind


class BatchSyncRequest(BaseModel):
    """Request to sync a batch of answered items"""
    attempts: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Attempts since the last sync: [{id, correct}]"
    )
    claimed_reward: int = Field(default=0, description="XP the client believes it earned")
    is_complete: bool = Field(default=False, description="Client thinks today's set is done")


class EligibilityResponse(BaseModel):
    """Can the player start this mode today"""
    mode: str
    eligible: bool
    day_key: str


class GameResultResponse(BaseModel):
    """Outcome of a finished session"""
    xp_awarded: int
    coins_awarded: int
    new_xp: int
    new_coins: int
    unlocked_artifacts: List[str]
    newly_unlocked: List[str]
    level: int
    leveled_up: bool
    attempts_today: int
    game_stats: Dict[str, Any]


class BatchSyncResponse(BaseModel):
    """Outcome of a batch sync"""
    accepted_reward: int
    coins_awarded: int
    replayed: int
    total_progress: int
    correct_today: int
    daily_xp: int
    best_score: int
    completions: int
    is_complete: bool
    new_xp: int
    new_coins: int
    newly_unlocked: List[str]


class ReorderRequest(BaseModel):
    """Move one member of a sibling family"""
    kind: FamilyKind = Field(..., description="levels, difficulties or questions")
    scope: str = Field(default="", description="Parent scope (level id, or level:difficulty)")
    member_id: str = Field(..., description="Member to move")
    direction: Direction = Field(..., description="up or down")


class AddMemberRequest(BaseModel):
    """Register a content record at the end of its family"""
    scope: str = Field(default="", description="Parent scope (level id, or level:difficulty)")
    member_id: str = Field(..., min_length=1, description="Content record id")
    required_score: Optional[int] = Field(
        default=None, ge=0, le=100, description="Pass mark (required for difficulties)"
    )


class ReorderResponse(BaseModel):
    """Family order after a move"""
    kind: str
    scope: str
    orders: Dict[str, int]


class RateLimitConsumeRequest(BaseModel):
    """Spend one slot of an action's budget on behalf of another service"""
    identifier: str = Field(..., min_length=1, description="Username, player id or client IP")
    player_id: Optional[str] = Field(default=None, description="Player to attribute violations to")


class ResetPlayerRequest(BaseModel):
    """Admin reset of a player's progress"""
    reason: Optional[str] = Field(default=None, description="Audit note")


class ViolationResponse(BaseModel):
    """Rate limit violation notification"""
    id: str
    identifier: str
    action: str
    limit: int
    count: int
    window_minutes: int
    created_at: datetime
    is_read: bool
    player_id: Optional[str] = None


class ViolationListResponse(BaseModel):
    violations: List[ViolationResponse]


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Store connection status")
    timestamp: datetime = Field(..., description="Check timestamp")


class LevelAttemptRequest(BaseModel):
    """A finished level round"""
    difficulty: str = Field(..., description="Difficulty name within the level")
    score: int = Field(..., description="Percentage score, 0..100")


class LevelAttemptResponse(BaseModel):
    """Outcome of a level round"""
    level_id: str
    difficulty: str
    score: int
    passed: bool
    is_new_high_score: bool
    level_completed: bool
    attempts: int
    high_score: int
    coins_awarded: int
    new_coins: int


class GrammarSyncRequest(BaseModel):
    """Grammar detective answers since the last sync"""
    questions_answered: int = Field(..., description="Questions answered since the last sync")
    correct_answers: int = Field(..., description="Of which correct")
    current_question_index: int = Field(..., description="Where to resume")
