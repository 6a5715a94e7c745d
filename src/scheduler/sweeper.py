"""
Periodic cleanup of rate limiting state

Runs on the service's AsyncIOScheduler:
- rate limit counters untouched for RATE_LIMIT_RETENTION_MINUTES are deleted
- violation notifications older than VIOLATION_RETENTION_DAYS are deleted

Counters are recreated lazily on the next call, so deleting them early
only ever resets a window.
"""

import logging
from datetime import timedelta
from typing import Dict

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.config import (
    RATE_LIMIT_RETENTION_MINUTES,
    RATE_LIMIT_SWEEP_MINUTES,
    VIOLATION_RETENTION_DAYS,
)
from src.observability.metrics import sweeper_rows_deleted_total
from src.security.rate_limiter import RateLimiter
from src.services.admin_service import AdminService

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "rate_limit_sweep"


class RateLimitSweeper:
    """Deletes expired counters and old violation notifications"""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        admin_service: AdminService,
        retention_minutes: int = RATE_LIMIT_RETENTION_MINUTES,
        violation_retention_days: int = VIOLATION_RETENTION_DAYS,
    ):
        self.rate_limiter = rate_limiter
        self.admin_service = admin_service
        self.retention = timedelta(minutes=retention_minutes)
        self.violation_retention_days = violation_retention_days

    async def run_once(self) -> Dict[str, int]:
        """One sweep; a failure is logged and the next run tries again"""
        counters = await self.rate_limiter.cleanup_expired(self.retention)
        sweeper_rows_deleted_total.labels(table="rate_limit_counters").inc(counters)

        violations = await self.admin_service.clear_old_violations(self.violation_retention_days)

        logger.info(f"Rate limit sweep: {counters} counters, {violations} violations deleted")
        return {"counters_deleted": counters, "violations_deleted": violations}

    async def _scheduled_run(self) -> None:
        try:
            await self.run_once()
        except Exception as e:
            logger.error(f"Rate limit sweep failed: {e}", exc_info=True)

    def schedule(self, scheduler: AsyncIOScheduler, minutes: int = RATE_LIMIT_SWEEP_MINUTES) -> None:
        scheduler.add_job(
            self._scheduled_run,
            "interval",
            minutes=minutes,
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        logger.info(f"Scheduled rate limit sweep every {minutes} minutes")
