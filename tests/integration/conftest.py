"""Shared fixtures for API integration tests"""
import pytest
import httpx
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict
from unittest.mock import patch
from uuid import uuid4

from src.api.middleware import limiter
from src.api.server import create_api_application
from src.db.memory_store import MemoryStore
from src.models.progress import PlayerSession
from src.services.container import ServiceContainer, init_container, reset_container
from src.utils.datetime_helpers import FixedClock

TEST_INSTANT = datetime(2024, 3, 15, 6, 0, tzinfo=timezone.utc)

TEST_ADMIN_KEY = "admin-test-key-123"


@pytest.fixture
def services() -> ServiceContainer:
    """Global container backed by a fresh in-memory store"""
    container = init_container(MemoryStore(), FixedClock(TEST_INSTANT))
    yield container
    reset_container()


@pytest.fixture
def per_ip_limits_disabled():
    """The per-IP limiter is process-global; keep it out of functional tests"""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
async def api_client(services, per_ip_limits_disabled) -> AsyncGenerator[httpx.AsyncClient, None]:
    """In-process HTTP client (the lifespan is not run; the container is pre-built)"""
    app = create_api_application(enable_sweeper=False)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0,
    ) as client:
        yield client


@pytest.fixture
def unique_player_id() -> str:
    """Generate unique player ID for test isolation"""
    return f"test_player_{uuid4().hex[:12]}"


@pytest.fixture
async def auth_headers(services, unique_player_id) -> Dict[str, str]:
    """Valid session for unique_player_id, as the auth service would issue it"""
    token = f"session-{uuid4().hex}"
    session = PlayerSession(
        token=token,
        player_id=unique_player_id,
        expires_at=services.clock.now() + timedelta(hours=1),
    )
    async with services.store.transaction() as tx:
        await tx.save_session(session)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    """Admin API key headers (key patched into the configured set)"""
    with patch("src.api.auth.get_admin_api_keys", return_value=[TEST_ADMIN_KEY]):
        yield {"Authorization": f"Bearer {TEST_ADMIN_KEY}"}
