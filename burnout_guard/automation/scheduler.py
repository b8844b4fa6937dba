"""
Tool: Protection Scheduler
Purpose: Periodic and on-demand protection runs over every connected user

The periodic trigger follows a cron expression (default every 20 minutes)
and only reports to the operational log. The on-demand trigger returns the
aggregate result to its caller. Both go through the orchestrator, whose
per-user locks keep them from overlapping on the same user.

Usage:
    from burnout_guard.automation.scheduler import ProtectionScheduler

    scheduler = ProtectionScheduler(orchestrator, config.scheduler)
    scheduler.start()           # inside a running event loop
    aggregate = await scheduler.run_now()
    await scheduler.stop()

Dependencies:
    - croniter>=2.0.0 (cron expression parsing)
"""

import asyncio
from datetime import datetime
from typing import Any

from croniter import croniter

from burnout_guard.config import SchedulerConfig
from burnout_guard.logging_config import get_logger
from burnout_guard.protection.models import AggregateResult
from burnout_guard.protection.orchestrator import ProtectionOrchestrator

logger = get_logger(__name__)


def calculate_next_run(schedule: str, base_time: datetime | None = None) -> datetime:
    """Calculate next run time from cron expression."""
    base = base_time or datetime.now().astimezone()
    return croniter(schedule, base).get_next(datetime)


def validate_cron_expression(schedule: str) -> dict[str, Any]:
    """Validate a cron expression."""
    if not schedule:
        return {"valid": False, "error": "Empty schedule"}

    try:
        next_run = calculate_next_run(schedule)
        return {"valid": True, "next_run": next_run.isoformat(), "expression": schedule}
    except (ValueError, KeyError) as e:
        return {"valid": False, "error": str(e)}


class ProtectionScheduler:
    """Background loop that runs the orchestrator on a cron schedule."""

    def __init__(
        self,
        orchestrator: ProtectionOrchestrator,
        config: SchedulerConfig | None = None,
    ):
        self.orchestrator = orchestrator
        self.config = config or SchedulerConfig()

        check = validate_cron_expression(self.config.schedule)
        if not check["valid"]:
            raise ValueError(f"Invalid schedule '{self.config.schedule}': {check['error']}")

        self.running = False
        self.next_run: datetime | None = None
        self.last_run: datetime | None = None
        self.last_actions: int | None = None
        self.runs = 0
        self.errors = 0
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        """Start the periodic loop on the current event loop."""
        if not self.config.enabled:
            logger.info("Scheduler disabled, periodic protection checks will not run")
            return
        if self._task is not None and not self._task.done():
            return

        self.running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Scheduler started with schedule '{self.config.schedule}'")

    async def stop(self) -> None:
        """Cancel the periodic loop and wait for it to finish."""
        self.running = False
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Scheduler stopped")

    async def _run_loop(self) -> None:
        if self.config.run_on_start:
            await self._tick()

        while self.running:
            self.next_run = calculate_next_run(self.config.schedule)
            delay = (self.next_run - datetime.now().astimezone()).total_seconds()
            await asyncio.sleep(max(delay, 0))
            await self._tick()

    async def _tick(self) -> None:
        """One periodic run; failures are logged and the loop carries on."""
        logger.info("Running scheduled protection check")
        try:
            await self.run_now(trigger="schedule")
        except Exception:
            self.errors += 1
            logger.exception("Scheduled protection check failed")

    async def run_now(self, trigger: str = "manual") -> AggregateResult:
        """Run protection for all connected users and return the aggregate result."""
        aggregate = await self.orchestrator.run_for_all_users(trigger=trigger)

        self.runs += 1
        self.last_run = datetime.now().astimezone()
        self.last_actions = aggregate.total_actions
        return aggregate

    def get_status(self) -> dict[str, Any]:
        """Scheduler status for health reporting."""
        return {
            "enabled": self.config.enabled,
            "running": self.running,
            "schedule": self.config.schedule,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_actions": self.last_actions,
            "runs": self.runs,
            "errors": self.errors,
        }
