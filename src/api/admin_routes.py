"""Admin API routes (admin API key required)"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from src.api.auth import get_services, verify_admin_key
from src.api.middleware import limiter
from src.api.models import (
    AddMemberRequest,
    RateLimitConsumeRequest,
    ReorderRequest,
    ReorderResponse,
    ResetPlayerRequest,
    ViolationListResponse,
    ViolationResponse,
)
from src.config import VIOLATION_RETENTION_DAYS
from src.models.ordering import FamilyKey, FamilyKind
from src.models.rate_limit import RateLimitResult
from src.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", dependencies=[Depends(verify_admin_key)])


@router.post("/reorder", response_model=ReorderResponse)
@limiter.limit("60/minute")
async def reorder(
    request: Request,
    payload: ReorderRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Move a level, difficulty or question up or down"""
    family = FamilyKey(kind=payload.kind, scope=payload.scope)
    orders = await services.ordering_service.reorder_family(family, payload.member_id, payload.direction)
    return ReorderResponse(kind=family.kind.value, scope=family.scope, orders=orders)


@router.get("/families/{kind}")
@limiter.limit("60/minute")
async def list_family(
    request: Request,
    kind: FamilyKind,
    scope: str = "",
    services: ServiceContainer = Depends(get_services),
):
    """Members of a family in display order"""
    siblings = await services.ordering_service.list_family(FamilyKey(kind=kind, scope=scope))
    return {
        "kind": kind.value,
        "scope": scope,
        "members": services.ordering_service.describe(siblings),
    }


@router.post("/families/{kind}/members")
@limiter.limit("60/minute")
async def add_family_member(
    request: Request,
    kind: FamilyKind,
    payload: AddMemberRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Register a new level, difficulty or question at the end of its family"""
    sibling = await services.ordering_service.add_member(
        FamilyKey(kind=kind, scope=payload.scope), payload.member_id, required_score=payload.required_score
    )
    return {
        "kind": kind.value,
        "scope": payload.scope,
        "member_id": sibling.member_id,
        "order": sibling.order,
        "required_score": sibling.required_score,
    }


@router.post("/players/{player_id}/reset")
@limiter.limit("10/minute")
async def reset_player(
    request: Request,
    player_id: str,
    payload: Optional[ResetPlayerRequest] = Body(default=None),
    services: ServiceContainer = Depends(get_services),
):
    """Zero a player's progress"""
    reason = payload.reason if payload else None
    progress = await services.admin_service.reset_player(player_id, reason=reason)
    return {"player_id": progress.player_id, "xp": progress.xp, "coins": progress.coins, "reset": True}


@router.post("/rate-limits/{action}/consume", response_model=RateLimitResult)
@limiter.limit("300/minute")
async def consume_rate_limit(
    request: Request,
    action: str,
    payload: RateLimitConsumeRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Spend one slot of an action's budget (e.g. login attempts by username)

    Answers 429 with Retry-After once the budget is exhausted.
    """
    return await services.progression_service.check_and_consume_rate_limit(
        action, payload.identifier, player_id=payload.player_id
    )


@router.get("/violations", response_model=ViolationListResponse)
@limiter.limit("60/minute")
async def list_violations(
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
    unread_only: bool = False,
    services: ServiceContainer = Depends(get_services),
):
    """Rate limit notifications, newest first"""
    violations = await services.admin_service.list_violations(limit=limit, unread_only=unread_only)
    return ViolationListResponse(
        violations=[ViolationResponse(**v.model_dump()) for v in violations]
    )


@router.get("/violations/unread-count")
@limiter.limit("120/minute")
async def unread_count(request: Request, services: ServiceContainer = Depends(get_services)):
    return {"unread": await services.admin_service.unread_count()}


@router.post("/violations/read-all")
@limiter.limit("60/minute")
async def mark_all_read(request: Request, services: ServiceContainer = Depends(get_services)):
    return {"marked_read": await services.admin_service.mark_all_read()}


@router.post("/violations/{violation_id}/read", response_model=ViolationResponse)
@limiter.limit("60/minute")
async def mark_read(
    request: Request,
    violation_id: str,
    services: ServiceContainer = Depends(get_services),
):
    violation = await services.admin_service.mark_read(violation_id)
    return ViolationResponse(**violation.model_dump())


@router.delete("/violations/old")
@limiter.limit("10/minute")
async def clear_old_violations(
    request: Request,
    older_than_days: int = Query(default=VIOLATION_RETENTION_DAYS, ge=1),
    services: ServiceContainer = Depends(get_services),
):
    """Delete notifications past retention"""
    return {"deleted": await services.admin_service.clear_old_violations(older_than_days)}


@router.get("/security-overview")
@limiter.limit("60/minute")
async def security_overview(request: Request, services: ServiceContainer = Depends(get_services)):
    """Last 24 hours of rate limit activity"""
    return await services.admin_service.security_overview()
