"""Global test fixtures and utilities for progression engine tests"""
import pytest
from datetime import datetime, timedelta, timezone

from src.db.memory_store import MemoryStore
from src.models.ordering import FamilyKey, OrderedSibling
from src.models.progress import PlayerProgress, PlayerSession
from src.security.rate_limiter import RateLimiter
from src.services.admin_service import AdminService
from src.services.ordering_service import OrderingService
from src.services.progression_service import ProgressionService
from src.utils.datetime_helpers import FixedClock


# 06:00 UTC is 11:30 in the home region (UTC+05:30): mid-day on 2024-03-15
TEST_INSTANT = datetime(2024, 3, 15, 6, 0, tzinfo=timezone.utc)


# ============================================================================
# Clock & Store Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Clock frozen mid-day on 2024-03-15 (home region)"""
    return FixedClock(TEST_INSTANT)


@pytest.fixture
def store():
    """Fresh in-memory store per test"""
    return MemoryStore()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def rate_limiter(store, clock):
    return RateLimiter(store, clock)


@pytest.fixture
def progression_service(store, clock, rate_limiter):
    """ProgressionService with rate limiting enabled"""
    return ProgressionService(store, clock, rate_limiter=rate_limiter)


@pytest.fixture
def unlimited_service(store, clock):
    """ProgressionService without a rate limiter (for high-volume scenarios)"""
    return ProgressionService(store, clock)


@pytest.fixture
def ordering_service(store, clock):
    return OrderingService(store, clock)


@pytest.fixture
def admin_service(store, clock):
    return AdminService(store, clock)


# ============================================================================
# Player Fixtures
# ============================================================================

@pytest.fixture
def test_player_id():
    """Standard test player ID"""
    return "child-123"


@pytest.fixture
def seed_progress(store):
    """Write a progress record directly, bypassing the services"""

    async def _seed(player_id: str, **fields) -> PlayerProgress:
        progress = PlayerProgress(player_id=player_id, **fields)
        async with store.transaction() as tx:
            await tx.save_progress(progress)
        return progress

    return _seed


@pytest.fixture
def seed_session(store, clock):
    """Register a session token the way the auth service would"""

    async def _seed(token: str, player_id: str, ttl: timedelta = timedelta(hours=1)) -> PlayerSession:
        session = PlayerSession(token=token, player_id=player_id, expires_at=clock.now() + ttl)
        async with store.transaction() as tx:
            await tx.save_session(session)
        return session

    return _seed


@pytest.fixture
def seed_family(store, clock):
    """Write sibling rows with arbitrary (possibly drifted) order values"""

    async def _seed(family: FamilyKey, orders: dict) -> list:
        siblings = []
        async with store.transaction() as tx:
            for offset, (member_id, order) in enumerate(orders.items()):
                sibling = OrderedSibling(
                    member_id=member_id,
                    family=family,
                    order=order,
                    created_at=clock.now() + timedelta(seconds=offset),
                )
                await tx.add_family_member(sibling)
                siblings.append(sibling)
        return siblings

    return _seed


@pytest.fixture
def seed_level(store, clock):
    """Define a level by its difficulties and their pass marks"""

    async def _seed(level_id: str, pass_marks: dict) -> list:
        family = FamilyKey.difficulties(level_id)
        siblings = []
        async with store.transaction() as tx:
            for position, (name, required_score) in enumerate(pass_marks.items(), start=1):
                sibling = OrderedSibling(
                    member_id=name,
                    family=family,
                    order=position,
                    created_at=clock.now() + timedelta(seconds=position),
                    required_score=required_score,
                )
                await tx.add_family_member(sibling)
                siblings.append(sibling)
        return siblings

    return _seed


@pytest.fixture
def read_progress(store):
    """Committed progress record for assertions"""

    async def _read(player_id: str):
        async with store.transaction() as tx:
            return await tx.get_progress(player_id)

    return _read
