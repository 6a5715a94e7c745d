"""API authentication: player session tokens and admin API keys"""
import logging
import secrets
from typing import Optional, Protocol

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from src.config import ADMIN_API_KEYS
from src.db.store import Store
from src.exceptions import AuthenticationError, AuthorizationError
from src.services.container import ServiceContainer, get_container
from src.utils.datetime_helpers import Clock, default_clock, ensure_utc

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class SessionResolver(Protocol):
    """Resolves an opaque session token to a player id"""

    async def resolve(self, token: str) -> str:
        ...


class StoreSessionResolver:
    """
    Looks up sessions issued by the auth service

    Issuing sessions is not this service's job; it only reads them.
    """

    def __init__(self, store: Store, clock: Clock = default_clock):
        self.store = store
        self.clock = clock

    async def resolve(self, token: str) -> str:
        """
        Raises:
            AuthenticationError: Unknown or expired token
        """
        async with self.store.transaction() as tx:
            session = await tx.get_session(token)

        if session is None:
            raise AuthenticationError(message="Unknown session token", operation="resolve_session")
        if ensure_utc(session.expires_at) <= self.clock.now():
            raise AuthenticationError(
                message="Session expired",
                player_id=session.player_id,
                operation="resolve_session",
            )
        return session.player_id


def get_services() -> ServiceContainer:
    return get_container()


async def get_current_player(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    services: ServiceContainer = Depends(get_services),
) -> str:
    """Resolve the bearer session token to a player id"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing session token", operation="authenticate")
    return await services.session_resolver.resolve(credentials.credentials)


def get_admin_api_keys() -> list[str]:
    """Admin API keys from configuration"""
    return ADMIN_API_KEYS


async def verify_admin_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """
    Verify admin API key from Authorization header

    Returns:
        The verified API key

    Raises:
        AuthenticationError: No key presented
        AuthorizationError: Key is not an admin key (or none are configured)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing admin API key", operation="verify_admin")

    api_key = credentials.credentials
    valid_keys = get_admin_api_keys()

    if not valid_keys:
        logger.error("No ADMIN_API_KEYS configured - rejecting all admin requests")
        raise AuthorizationError(message="Admin access not configured", resource="admin API")

    if not any(secrets.compare_digest(api_key, key) for key in valid_keys):
        logger.warning(f"Invalid admin API key attempt: {api_key[:6]}...")
        raise AuthorizationError(message="Invalid admin API key", resource="admin API")

    logger.debug(f"Admin API key validated: {api_key[:6]}...")
    return api_key
