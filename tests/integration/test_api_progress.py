"""Integration tests for player-facing progression endpoints"""
import pytest
import httpx
from datetime import timedelta
from typing import Dict

from src.models.progress import PlayerSession
from tests.integration.api_helpers import (
    assert_error_response,
    assert_has_keys,
    assert_success_response,
    assert_valid_progress,
    assert_valid_timestamp,
)

pytestmark = pytest.mark.integration


# ============================================================================
# Health & Auth
# ============================================================================

@pytest.mark.asyncio
async def test_health_check(api_client: httpx.AsyncClient):
    response = await api_client.get("/api/v1/health")

    assert_success_response(response)
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert_valid_timestamp(data["timestamp"])


@pytest.mark.asyncio
async def test_missing_session_token(api_client: httpx.AsyncClient):
    response = await api_client.get("/api/v1/progress")

    assert_error_response(response, 401, "AuthenticationError")


@pytest.mark.asyncio
async def test_unknown_session_token(api_client: httpx.AsyncClient):
    response = await api_client.get("/api/v1/progress", headers={"Authorization": "Bearer forged"})

    assert_error_response(response, 401, "AuthenticationError")


@pytest.mark.asyncio
async def test_expired_session_token(api_client: httpx.AsyncClient, services, unique_player_id: str):
    async with services.store.transaction() as tx:
        await tx.save_session(PlayerSession(
            token="stale",
            player_id=unique_player_id,
            expires_at=services.clock.now() - timedelta(minutes=1),
        ))

    response = await api_client.get("/api/v1/progress", headers={"Authorization": "Bearer stale"})

    assert_error_response(response, 401, "AuthenticationError")


# ============================================================================
# Progress & Eligibility
# ============================================================================

@pytest.mark.asyncio
async def test_get_progress_new_player(
    api_client: httpx.AsyncClient,
    auth_headers: Dict[str, str],
    unique_player_id: str
):
    response = await api_client.get("/api/v1/progress", headers=auth_headers)

    assert_success_response(response)
    data = response.json()
    assert_valid_progress(data)
    assert data["player_id"] == unique_player_id
    assert data["xp"] == 0


@pytest.mark.asyncio
async def test_eligibility_flow(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    before = await api_client.get("/api/v1/games/wordle/eligibility", headers=auth_headers)
    assert_success_response(before)
    assert before.json() == {"mode": "wordle", "eligible": True, "day_key": "2024-03-15"}

    played = await api_client.post(
        "/api/v1/games/wordle/results",
        json={"won": True, "guess_count": 3},
        headers=auth_headers,
    )
    assert_success_response(played)

    after = await api_client.get("/api/v1/games/wordle/eligibility", headers=auth_headers)
    assert after.json()["eligible"] is False


# ============================================================================
# Game Results
# ============================================================================

@pytest.mark.asyncio
async def test_record_result_computes_reward(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/games/word_finder_easy/results",
        json={"words_found": 5, "time_remaining": 300},
        headers=auth_headers,
    )

    assert_success_response(response)
    data = response.json()
    assert data["xp_awarded"] == 50
    assert data["coins_awarded"] == 5
    assert data["attempts_today"] == 1


@pytest.mark.asyncio
async def test_second_play_conflicts(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    await api_client.post("/api/v1/games/wordle/results", json={"won": False}, headers=auth_headers)

    response = await api_client.post("/api/v1/games/wordle/results", json={"won": False}, headers=auth_headers)

    assert_error_response(response, 409, "AlreadyCompletedTodayError")
    assert "tomorrow" in response.json()["user_message"]


@pytest.mark.asyncio
async def test_out_of_range_result_rejected(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/games/wordle/results",
        json={"won": True, "guess_count": 9},
        headers=auth_headers,
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_nan_time_remaining_rejected(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/games/word_finder_hard/results",
        content='{"correct_answers": 3, "time_remaining": NaN}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_oversized_hard_round_rejected(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/games/word_finder_hard/results",
        json={"correct_answers": 1000, "total_questions": 1000},
        headers=auth_headers,
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_client_reward_rejected(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/games/let_em_cook/results",
        json={"correct_count": 3, "total_questions": 5, "xp_reward": 5000},
        headers=auth_headers,
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_unknown_mode_rejected(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.get("/api/v1/games/chess/daily", headers=auth_headers)

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_rate_limited_submissions(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    """finish_game allows 30 per minute; the 31st gets 429 with Retry-After"""
    statuses = []
    for _ in range(30):
        response = await api_client.post(
            "/api/v1/games/wordle/results", json={"won": False}, headers=auth_headers
        )
        statuses.append(response.status_code)

    assert statuses[0] == 200
    assert set(statuses[1:]) == {409}

    response = await api_client.post("/api/v1/games/wordle/results", json={"won": False}, headers=auth_headers)

    assert_error_response(response, 429, "RateLimitedError")
    assert response.headers["Retry-After"] == "60"
    data = response.json()
    assert data["type"] == "RATE_LIMIT"
    assert data["retry_after_seconds"] == 60


# ============================================================================
# Batch Sync
# ============================================================================

@pytest.mark.asyncio
async def test_batch_sync_and_retry(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    payload = {
        "attempts": [{"id": "fr", "correct": True}, {"id": "br", "correct": False}],
        "claimed_reward": 999,
    }

    first = await api_client.post("/api/v1/games/flag_champs/sync", json=payload, headers=auth_headers)
    retry = await api_client.post("/api/v1/games/flag_champs/sync", json=payload, headers=auth_headers)

    assert_success_response(first)
    assert first.json()["accepted_reward"] == 6
    assert first.json()["coins_awarded"] == 2

    assert_success_response(retry)
    assert retry.json()["accepted_reward"] == 0
    assert retry.json()["replayed"] == 2
    assert retry.json()["new_xp"] == 6


@pytest.mark.asyncio
async def test_batch_sync_on_session_mode(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/games/wordle/sync",
        json={"attempts": [], "claimed_reward": 0},
        headers=auth_headers,
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_daily_progress_for_resume(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    await api_client.post(
        "/api/v1/games/explorer/sync",
        json={"attempts": [{"id": "kerala", "correct": True}], "claimed_reward": 10},
        headers=auth_headers,
    )

    response = await api_client.get("/api/v1/games/explorer/daily", headers=auth_headers)

    assert_success_response(response)
    data = response.json()
    assert_has_keys(data, ["day_key", "guessed_today", "correct_today", "total_items", "stats"])
    assert data["guessed_today"] == ["kerala"]
    assert data["total_items"] == 36


# ============================================================================
# Small Mutations
# ============================================================================

@pytest.mark.asyncio
async def test_hint_then_result(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    hint = await api_client.post("/api/v1/games/wordle/hint", headers=auth_headers)
    assert_success_response(hint)
    assert hint.json() == {"mode": "wordle", "hint_used_today": True}

    result = await api_client.post(
        "/api/v1/games/wordle/results",
        json={"won": True, "guess_count": 1},
        headers=auth_headers,
    )
    assert result.json()["xp_awarded"] == 25


@pytest.mark.asyncio
async def test_app_open_and_sync_unlocks(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    opened = await api_client.post("/api/v1/progress/app-open", headers=auth_headers)
    assert_success_response(opened)
    assert opened.json()["current_streak"] == 1

    synced = await api_client.post("/api/v1/progress/sync-unlocks", headers=auth_headers)
    assert_success_response(synced)
    assert synced.json()["newly_unlocked"] == []


@pytest.mark.asyncio
async def test_metrics_endpoint(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    await api_client.post(
        "/api/v1/games/gk_competitive/results",
        json={"correct_count": 2, "total_questions": 10},
        headers=auth_headers,
    )

    response = await api_client.get("/metrics")

    assert_success_response(response)
    assert "progression_xp_awarded_total" in response.text
    assert "rate_limit_checks_total" in response.text


# ============================================================================
# Levels & Grammar Detective
# ============================================================================

@pytest.mark.asyncio
async def test_level_attempt_flow(api_client: httpx.AsyncClient, auth_headers, admin_headers):
    for name, pass_mark in (("easy", 60), ("hard", 80)):
        registered = await api_client.post(
            "/api/v1/admin/families/difficulties/members",
            json={"scope": "level-1", "member_id": name, "required_score": pass_mark},
            headers=admin_headers,
        )
        assert_success_response(registered)

    passed = await api_client.post(
        "/api/v1/levels/level-1/attempts",
        json={"difficulty": "easy", "score": 70},
        headers=auth_headers,
    )
    assert_success_response(passed)
    assert passed.json()["passed"] is True
    assert passed.json()["coins_awarded"] == 50

    progress = await api_client.get("/api/v1/levels/progress", headers=auth_headers)
    assert_success_response(progress)
    levels = progress.json()["levels"]
    assert levels[0]["level_id"] == "level-1"
    assert levels[0]["is_completed"] is False


@pytest.mark.asyncio
async def test_level_attempt_unknown_level(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/levels/nowhere/attempts",
        json={"difficulty": "easy", "score": 70},
        headers=auth_headers,
    )

    assert_error_response(response, 404, "RecordNotFoundError")


@pytest.mark.asyncio
async def test_level_score_out_of_range(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    response = await api_client.post(
        "/api/v1/levels/level-1/attempts",
        json={"difficulty": "easy", "score": 140},
        headers=auth_headers,
    )

    assert_error_response(response, 422, "ValidationError")


@pytest.mark.asyncio
async def test_grammar_sync_and_resume(api_client: httpx.AsyncClient, auth_headers: Dict[str, str]):
    synced = await api_client.post(
        "/api/v1/grammar/progress",
        json={"questions_answered": 4, "correct_answers": 3, "current_question_index": 4},
        headers=auth_headers,
    )
    assert_success_response(synced)
    assert synced.json()["xp_awarded"] == 6

    resumed = await api_client.get("/api/v1/grammar/progress", headers=auth_headers)
    assert_success_response(resumed)
    assert resumed.json()["current_question_index"] == 4
    assert resumed.json()["total_xp_earned"] == 6
