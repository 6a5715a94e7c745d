"""Rate limiting models"""
from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel


class RateLimitPolicy(BaseModel):
    """Static per-action budget"""
    max: int
    window: timedelta

    @property
    def window_minutes(self) -> int:
        return max(1, int(self.window.total_seconds() // 60))


class RateLimitCounter(BaseModel):
    """One counter per (identifier, action)"""
    identifier: str
    action: str
    window_start: datetime
    count: int
    updated_at: datetime
    player_id: Optional[str] = None


class RateLimitResult(BaseModel):
    """Outcome of an under-budget check"""
    allowed: bool
    remaining: int
    reset_at: datetime


class RateLimitViolation(BaseModel):
    """Admin-visible record of a rejected call (coalesced per action/identifier)"""
    id: str
    identifier: str
    action: str
    limit: int
    count: int
    window_minutes: int
    created_at: datetime
    is_read: bool = False
    player_id: Optional[str] = None
