"""
Service Layer Package

Business logic between the HTTP layer and the store.

Core Services:
- ProgressionService: Daily games, rewards, batch sync, streaks, unlocks
- OrderingService: Dense ordering of content sibling families
- AdminService: Violation notifications, security overview, player reset
"""

from src.services.container import ServiceContainer, get_container, init_container, reset_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "reset_container",
]
