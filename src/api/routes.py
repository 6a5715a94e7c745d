"""API routes for players"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from src.api.auth import get_current_player, get_services
from src.api.middleware import limiter
from src.api.models import (
    BatchSyncRequest,
    BatchSyncResponse,
    EligibilityResponse,
    GameResultResponse,
    GrammarSyncRequest,
    HealthCheckResponse,
    LevelAttemptRequest,
    LevelAttemptResponse,
)
from src.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/v1/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request, services: ServiceContainer = Depends(get_services)):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    try:
        async with services.store.transaction() as tx:
            await tx.count_unread_violations()
        store_status = "connected"
    except Exception as e:
        logger.error(f"Store health check failed: {e}")
        store_status = "disconnected"

    return HealthCheckResponse(
        status="healthy" if store_status == "connected" else "degraded",
        database=store_status,
        timestamp=datetime.now(timezone.utc)
    )


@router.get("/api/v1/progress")
@limiter.limit("60/minute")
async def get_progress(
    request: Request,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """XP, coins, level, artifacts and per-game stats"""
    return await services.progression_service.get_progress(player_id)


@router.get("/api/v1/games/{mode}/eligibility", response_model=EligibilityResponse)
@limiter.limit("120/minute")
async def check_eligibility(
    request: Request,
    mode: str,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Can the player start this game today"""
    eligible = await services.progression_service.check_eligibility(player_id, mode)
    return EligibilityResponse(mode=mode, eligible=eligible, day_key=services.clock.today())


@router.get("/api/v1/games/{mode}/daily")
@limiter.limit("120/minute")
async def get_daily_progress(
    request: Request,
    mode: str,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Today's progress for a game (for resuming after an app restart)"""
    return await services.progression_service.get_daily_progress(player_id, mode)


@router.post("/api/v1/games/{mode}/results", response_model=GameResultResponse)
@limiter.limit("60/minute")
async def record_game_result(
    request: Request,
    mode: str,
    payload: Dict[str, Any] = Body(...),
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """
    Submit a finished session

    Rewards are computed server-side; reward fields sent by the client
    are rejected as unknown input.
    """
    result = await services.progression_service.record_game_result(player_id, mode, payload)
    return GameResultResponse(**result)


@router.post("/api/v1/games/{mode}/sync", response_model=BatchSyncResponse)
@limiter.limit("60/minute")
async def sync_batch_progress(
    request: Request,
    mode: str,
    payload: BatchSyncRequest,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Background sync of a batch game (safe to retry)"""
    result = await services.progression_service.sync_batch_progress(
        player_id,
        mode,
        payload.attempts,
        payload.claimed_reward,
        payload.is_complete,
    )
    return BatchSyncResponse(**result)


@router.post("/api/v1/games/{mode}/hint")
@limiter.limit("60/minute")
async def mark_hint_used(
    request: Request,
    mode: str,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Record that a hint was revealed today"""
    return await services.progression_service.mark_hint_used(player_id, mode)


@router.post("/api/v1/progress/app-open")
@limiter.limit("30/minute")
async def record_app_open(
    request: Request,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Advance the daily login streak"""
    return await services.progression_service.record_app_open(player_id)


@router.post("/api/v1/progress/sync-unlocks")
@limiter.limit("30/minute")
async def sync_unlocks(
    request: Request,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Grant artifacts already earned by current XP"""
    return await services.progression_service.sync_progression(player_id)


@router.post("/api/v1/levels/{level_id}/attempts", response_model=LevelAttemptResponse)
@limiter.limit("60/minute")
async def submit_level_attempt(
    request: Request,
    level_id: str,
    payload: LevelAttemptRequest,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Submit a scored level round (coins on the first pass of a difficulty)"""
    result = await services.progression_service.submit_level_attempt(player_id, level_id, payload.model_dump())
    return LevelAttemptResponse(**result)


@router.get("/api/v1/levels/progress")
@limiter.limit("60/minute")
async def get_level_progress(
    request: Request,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    return await services.progression_service.get_level_progress(player_id)


@router.post("/api/v1/grammar/progress")
@limiter.limit("60/minute")
async def sync_grammar_progress(
    request: Request,
    payload: GrammarSyncRequest,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Add grammar detective answers since the last sync"""
    return await services.progression_service.sync_grammar_progress(player_id, payload.model_dump())


@router.get("/api/v1/grammar/progress")
@limiter.limit("60/minute")
async def get_grammar_progress(
    request: Request,
    player_id: str = Depends(get_current_player),
    services: ServiceContainer = Depends(get_services),
):
    """Resume position and lifetime grammar stats"""
    return await services.progression_service.get_grammar_progress(player_id)
