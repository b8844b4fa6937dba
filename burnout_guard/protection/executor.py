"""
Tool: Action Executor
Purpose: Insert a detector's proposed action into the user's calendar and record it

Insertion failures surface as InsertError; whether that ends the user's run
or only the current rule is the orchestrator's failure policy.

Usage:
    from burnout_guard.protection.executor import ActionExecutor

    executor = ActionExecutor(calendar_id="primary")
    await executor.execute(action, calendar_store, run_result)
"""

from typing import Any

from burnout_guard.logging_config import get_logger
from burnout_guard.protection.models import ProtectiveAction, RunResult
from burnout_guard.providers.base import CalendarStore

logger = get_logger(__name__)


class ActionExecutor:
    """Turns ProtectiveActions into calendar events."""

    def __init__(self, calendar_id: str = "primary"):
        self.calendar_id = calendar_id

    async def execute(
        self,
        action: ProtectiveAction,
        calendar: CalendarStore,
        result: RunResult,
    ) -> dict[str, Any]:
        """
        Insert the action and record it on the run result.

        Args:
            action: Proposed protective event
            calendar: Authenticated calendar store for the user
            result: Run result to append the log line to

        Returns:
            The created event as returned by the calendar store

        Raises:
            InsertError: The calendar rejected or failed the insert
        """
        created = await calendar.insert_event(self.calendar_id, action.to_event_payload())

        result.record_action(action)
        logger.info(
            "protective_action_inserted",
            user_id=result.user_id,
            kind=action.kind.value,
            start=action.start.isoformat(),
            end=action.end.isoformat(),
            event_id=created.get("id"),
        )
        return created
