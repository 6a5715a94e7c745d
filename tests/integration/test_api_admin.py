"""Integration tests for admin endpoints"""
import pytest
import httpx
from datetime import timedelta
from typing import Dict
from unittest.mock import patch

from src.exceptions import RateLimitedError
from src.models.ordering import FamilyKey, OrderedSibling
from src.models.progress import PlayerProgress
from tests.integration.api_helpers import (
    assert_error_response,
    assert_success_response,
    assert_valid_violation,
)

pytestmark = pytest.mark.integration


async def _seed_family(services, family: FamilyKey, orders: Dict[str, int]):
    async with services.store.transaction() as tx:
        for offset, (member_id, order) in enumerate(orders.items()):
            await tx.add_family_member(OrderedSibling(
                member_id=member_id,
                family=family,
                order=order,
                created_at=services.clock.now() + timedelta(seconds=offset),
            ))


async def _trip_login_limit(services, identifier: str = "203.0.113.7"):
    """Exhaust the login budget and get rejected once"""
    for _ in range(5):
        await services.progression_service.check_and_consume_rate_limit("login", identifier)
    with pytest.raises(RateLimitedError):
        await services.progression_service.check_and_consume_rate_limit("login", identifier)


# ============================================================================
# Admin Auth
# ============================================================================

@pytest.mark.asyncio
async def test_admin_requires_key(api_client: httpx.AsyncClient):
    response = await api_client.get("/api/v1/admin/violations")

    assert_error_response(response, 401, "AuthenticationError")


@pytest.mark.asyncio
async def test_admin_rejects_wrong_key(api_client: httpx.AsyncClient, admin_headers: Dict[str, str]):
    response = await api_client.get("/api/v1/admin/violations", headers={"Authorization": "Bearer nope"})

    assert_error_response(response, 403, "AuthorizationError")


@pytest.mark.asyncio
async def test_admin_rejects_everything_when_unconfigured(api_client: httpx.AsyncClient):
    with patch("src.api.auth.get_admin_api_keys", return_value=[]):
        response = await api_client.get("/api/v1/admin/violations", headers={"Authorization": "Bearer anything"})

    assert_error_response(response, 403, "AuthorizationError")


@pytest.mark.asyncio
async def test_player_session_is_not_admin(api_client: httpx.AsyncClient, auth_headers, admin_headers):
    response = await api_client.get("/api/v1/admin/security-overview", headers=auth_headers)

    assert_error_response(response, 403, "AuthorizationError")


# ============================================================================
# Reordering
# ============================================================================

@pytest.mark.asyncio
async def test_reorder_difficulties(api_client: httpx.AsyncClient, admin_headers, services):
    family = FamilyKey.difficulties("level-1")
    await _seed_family(services, family, {"easy": 1, "medium": 4, "hard": 4})

    response = await api_client.post(
        "/api/v1/admin/reorder",
        json={"kind": "difficulties", "scope": "level-1", "member_id": "hard", "direction": "up"},
        headers=admin_headers,
    )

    assert_success_response(response)
    assert response.json()["orders"] == {"easy": 1, "hard": 2, "medium": 3}

    listed = await api_client.get("/api/v1/admin/families/difficulties?scope=level-1", headers=admin_headers)
    assert [m["member_id"] for m in listed.json()["members"]] == ["easy", "hard", "medium"]
    assert [m["order"] for m in listed.json()["members"]] == [1, 2, 3]


@pytest.mark.asyncio
async def test_reorder_unknown_member(api_client: httpx.AsyncClient, admin_headers, services):
    await _seed_family(services, FamilyKey.levels(), {"level-1": 1})

    response = await api_client.post(
        "/api/v1/admin/reorder",
        json={"kind": "levels", "member_id": "level-9", "direction": "down"},
        headers=admin_headers,
    )

    assert_error_response(response, 404, "RecordNotFoundError")


@pytest.mark.asyncio
async def test_reorder_bad_direction(api_client: httpx.AsyncClient, admin_headers):
    response = await api_client.post(
        "/api/v1/admin/reorder",
        json={"kind": "levels", "member_id": "level-1", "direction": "left"},
        headers=admin_headers,
    )

    # Rejected by request validation before reaching the service
    assert response.status_code == 422


# ============================================================================
# Violations
# ============================================================================

@pytest.mark.asyncio
async def test_violation_notifications(api_client: httpx.AsyncClient, admin_headers, services):
    await _trip_login_limit(services)

    listed = await api_client.get("/api/v1/admin/violations", headers=admin_headers)
    assert_success_response(listed)
    violations = listed.json()["violations"]
    assert len(violations) == 1
    assert_valid_violation(violations[0])
    assert violations[0]["action"] == "login"
    assert violations[0]["limit"] == 5

    count = await api_client.get("/api/v1/admin/violations/unread-count", headers=admin_headers)
    assert count.json() == {"unread": 1}

    marked = await api_client.post(f"/api/v1/admin/violations/{violations[0]['id']}/read", headers=admin_headers)
    assert_success_response(marked)
    assert marked.json()["is_read"] is True

    count = await api_client.get("/api/v1/admin/violations/unread-count", headers=admin_headers)
    assert count.json() == {"unread": 0}


@pytest.mark.asyncio
async def test_mark_unknown_violation(api_client: httpx.AsyncClient, admin_headers):
    response = await api_client.post("/api/v1/admin/violations/missing/read", headers=admin_headers)

    assert_error_response(response, 404, "RecordNotFoundError")


@pytest.mark.asyncio
async def test_read_all_and_clear_old(api_client: httpx.AsyncClient, admin_headers, services):
    await _trip_login_limit(services)

    read_all = await api_client.post("/api/v1/admin/violations/read-all", headers=admin_headers)
    assert read_all.json() == {"marked_read": 1}

    services.clock.advance(days=8)
    cleared = await api_client.delete("/api/v1/admin/violations/old?older_than_days=7", headers=admin_headers)
    assert cleared.json() == {"deleted": 1}


@pytest.mark.asyncio
async def test_security_overview(api_client: httpx.AsyncClient, admin_headers, services):
    await _trip_login_limit(services)

    response = await api_client.get("/api/v1/admin/security-overview", headers=admin_headers)

    assert_success_response(response)
    data = response.json()
    assert data["violations_24h"] == 1
    assert data["violations_by_action"] == {"login": 1}
    assert data["unread_notifications"] == 1


# ============================================================================
# Player Reset
# ============================================================================

@pytest.mark.asyncio
async def test_reset_player(api_client: httpx.AsyncClient, admin_headers, services):
    async with services.store.transaction() as tx:
        await tx.save_progress(PlayerProgress(player_id="child-9", xp=900, coins=40))

    response = await api_client.post(
        "/api/v1/admin/players/child-9/reset",
        json={"reason": "parent request"},
        headers=admin_headers,
    )

    assert_success_response(response)
    assert response.json() == {"player_id": "child-9", "xp": 0, "coins": 0, "reset": True}


@pytest.mark.asyncio
async def test_reset_unknown_player(api_client: httpx.AsyncClient, admin_headers):
    response = await api_client.post("/api/v1/admin/players/nobody/reset", headers=admin_headers)

    assert_error_response(response, 404, "RecordNotFoundError")


# ============================================================================
# Rate Limits for Other Services
# ============================================================================

@pytest.mark.asyncio
async def test_consume_login_budget(api_client: httpx.AsyncClient, admin_headers):
    for remaining in (4, 3, 2, 1, 0):
        response = await api_client.post(
            "/api/v1/admin/rate-limits/login/consume",
            json={"identifier": "asha"},
            headers=admin_headers,
        )
        assert_success_response(response)
        assert response.json()["remaining"] == remaining

    response = await api_client.post(
        "/api/v1/admin/rate-limits/login/consume",
        json={"identifier": "asha"},
        headers=admin_headers,
    )

    assert_error_response(response, 429, "RateLimitedError")
    assert response.headers["Retry-After"] == "300"

    listed = await api_client.get("/api/v1/admin/violations", headers=admin_headers)
    assert listed.json()["violations"][0]["identifier"] == "asha"


@pytest.mark.asyncio
async def test_consume_unknown_action(api_client: httpx.AsyncClient, admin_headers):
    response = await api_client.post(
        "/api/v1/admin/rate-limits/teleport/consume",
        json={"identifier": "asha"},
        headers=admin_headers,
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_add_family_member(api_client: httpx.AsyncClient, admin_headers):
    response = await api_client.post(
        "/api/v1/admin/families/levels/members",
        json={"member_id": "level-1"},
        headers=admin_headers,
    )

    assert_success_response(response)
    assert response.json()["order"] == 1

    missing_mark = await api_client.post(
        "/api/v1/admin/families/difficulties/members",
        json={"scope": "level-1", "member_id": "easy"},
        headers=admin_headers,
    )
    assert_error_response(missing_mark, 422, "ValidationError")
