"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from src.config import DATABASE_URL, STORE_BACKEND
from src.db.store import Store
from src.utils.datetime_helpers import Clock, default_clock

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, clock) are injected.
    """

    # Infrastructure dependencies (injected)
    store: Store
    clock: Clock = field(default=default_clock)

    # Services (lazy-loaded via properties)
    _rate_limiter: Optional[object] = field(default=None, init=False, repr=False)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)
    _ordering_service: Optional[object] = field(default=None, init=False, repr=False)
    _admin_service: Optional[object] = field(default=None, init=False, repr=False)
    _session_resolver: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def rate_limiter(self):
        """Get RateLimiter instance (lazy-loaded)"""
        if self._rate_limiter is None:
            from src.security.rate_limiter import RateLimiter
            self._rate_limiter = RateLimiter(self.store, self.clock)
            logger.debug("RateLimiter instantiated")
        return self._rate_limiter

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from src.services.progression_service import ProgressionService
            self._progression_service = ProgressionService(
                self.store,
                self.clock,
                rate_limiter=self.rate_limiter
            )
            logger.debug("ProgressionService instantiated")
        return self._progression_service

    @property
    def ordering_service(self):
        """Get OrderingService instance (lazy-loaded)"""
        if self._ordering_service is None:
            from src.services.ordering_service import OrderingService
            self._ordering_service = OrderingService(self.store, self.clock)
            logger.debug("OrderingService instantiated")
        return self._ordering_service

    @property
    def admin_service(self):
        """Get AdminService instance (lazy-loaded)"""
        if self._admin_service is None:
            from src.services.admin_service import AdminService
            self._admin_service = AdminService(self.store, self.clock)
            logger.debug("AdminService instantiated")
        return self._admin_service

    @property
    def session_resolver(self):
        """Get SessionResolver instance (lazy-loaded)"""
        if self._session_resolver is None:
            from src.api.auth import StoreSessionResolver
            self._session_resolver = StoreSessionResolver(self.store, self.clock)
            logger.debug("StoreSessionResolver instantiated")
        return self._session_resolver

    @session_resolver.setter
    def session_resolver(self, resolver) -> None:
        self._session_resolver = resolver


# Global container instance (initialized by the API server)
_container: Optional[ServiceContainer] = None


def create_store(backend: str = STORE_BACKEND) -> Store:
    """Build the configured store backend (not yet opened)"""
    if backend == "memory":
        from src.db.memory_store import MemoryStore
        return MemoryStore()

    from src.db.postgres_store import PostgresStore
    return PostgresStore(DATABASE_URL)


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def has_container() -> bool:
    return _container is not None


def init_container(store: Store, clock: Clock = default_clock) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        store: Store instance (opened by the caller)
        clock: Day boundary clock

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(store=store, clock=clock)

    logger.info(f"Service container initialized ({type(store).__name__})")
    return _container


def reset_container() -> None:
    """Drop the global container (tests and shutdown)"""
    global _container
    _container = None
