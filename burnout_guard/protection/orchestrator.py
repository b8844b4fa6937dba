"""
Tool: Protection Orchestrator
Purpose: Run every rule over one fetch of a user's calendar, and loop over all users

Per-user run:
    Idle -> FetchingToken -> FetchingEvents -> EvaluatingRules (x4) -> Done | Failed

A ProtectionError (or anything unexpected) ends that user's run with a single
"Error: <message>" log line; it never reaches the loop over users. Insertions
made before the failure stay counted. There is no retry; the next scheduled
tick is the retry.

The fetch horizon is measured in elapsed time, so it stays 36 real hours
across DST changes.

Usage:
    from burnout_guard.protection.orchestrator import ProtectionOrchestrator

    orchestrator = ProtectionOrchestrator.from_config(config, token_provider, user_store)
    result = await orchestrator.run_for_user("U123")
    aggregate = await orchestrator.run_for_all_users()
    print("\\n".join(aggregate.summary_lines()))
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

from burnout_guard.config import BurnoutGuardConfig, ProtectionConfig
from burnout_guard.logging_config import get_logger, run_context
from burnout_guard.protection.detectors import Detector, default_detectors
from burnout_guard.protection.errors import InsertError, ProtectionError
from burnout_guard.protection.executor import ActionExecutor
from burnout_guard.protection.models import AggregateResult, RunResult, RunState
from burnout_guard.protection.normalizer import normalize_events
from burnout_guard.providers.base import CalendarStore, TokenProvider
from burnout_guard.providers.google_calendar import GoogleCalendarStore
from burnout_guard.users.store import UserStore

logger = get_logger(__name__)

CalendarFactory = Callable[[str], CalendarStore]
Clock = Callable[[], datetime]


class FailurePolicy(str, Enum):
    """What an insertion failure ends."""

    ABORT_RUN = "abort_run"  # the whole user run
    SKIP_RULE = "skip_rule"  # only the failing rule


def resolve_timezone(name: str | None) -> tzinfo:
    """Named IANA zone, or the server's local zone when unset."""
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProtectionOrchestrator:
    """
    Runs the protection rules for connected users.

    Collaborators are injected: a TokenProvider, a factory building a
    CalendarStore from an access token, and the UserStore read by the loop.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        calendar_factory: CalendarFactory,
        user_store: UserStore,
        *,
        config: ProtectionConfig | None = None,
        detectors: list[Detector] | None = None,
        executor: ActionExecutor | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ):
        self.config = config or ProtectionConfig()
        self.token_provider = token_provider
        self.calendar_factory = calendar_factory
        self.user_store = user_store
        self.detectors = detectors if detectors is not None else default_detectors(
            lunch_skip_after_window=self.config.lunch.skip_after_window,
            hard_stop_skip_if_present=self.config.hard_stop.skip_if_present,
        )
        self.executor = executor or ActionExecutor(calendar_id=self.config.calendar_id)
        self.clock = clock or utc_now
        self.tz = tz or resolve_timezone(self.config.timezone)
        self.failure_policy = FailurePolicy(self.config.failure_policy)

        self._user_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: BurnoutGuardConfig,
        token_provider: TokenProvider,
        user_store: UserStore,
        **kwargs,
    ) -> "ProtectionOrchestrator":
        """Orchestrator wired to Google Calendar with the configured request timeout."""
        timeout = config.descope.request_timeout_seconds

        def google_calendar(access_token: str) -> CalendarStore:
            return GoogleCalendarStore(access_token, timeout_seconds=timeout)

        return cls(token_provider, google_calendar, user_store, config=config.protection, **kwargs)

    def now(self) -> datetime:
        """Current time in the configured timezone."""
        return self.clock().astimezone(self.tz)

    def _get_user_lock(self, user_id: str) -> asyncio.Lock:
        """One lock per user so the periodic and on-demand triggers never overlap a run."""
        if user_id not in self._user_locks:
            self._user_locks[user_id] = asyncio.Lock()
        return self._user_locks[user_id]

    # =========================================================================
    # Single user
    # =========================================================================

    async def run_for_user(self, user_id: str, trigger: str = "manual") -> RunResult:
        """
        Protect one user's calendar.

        Args:
            user_id: Connected user id
            trigger: Label for logs ("schedule", "manual", ...)

        Returns:
            RunResult with actions taken and log lines (never raises for run failures)
        """
        result = RunResult(user_id=user_id)

        async with self._get_user_lock(user_id):
            with run_context(user_id=user_id, trigger=trigger):
                logger.info(f"Checking calendar for user: {user_id}")

                try:
                    await self._protect_within_timeout(user_id, result)
                except ProtectionError as e:
                    logger.error(f"Error processing calendar for user {user_id}: {e}")
                    result.record_error(str(e))
                except Exception as e:
                    logger.exception(f"Unexpected error processing calendar for user {user_id}")
                    result.record_error(str(e) or type(e).__name__)

                for entry in result.log:
                    logger.info(entry)

        return result

    async def _protect_within_timeout(self, user_id: str, result: RunResult) -> None:
        """Apply run_timeout_seconds; a TimeoutError raised by a collaborator is not a run timeout."""
        timeout = self.config.run_timeout_seconds or None
        try:
            async with asyncio.timeout(timeout) as deadline:
                await self._protect(user_id, result)
        except TimeoutError:
            if not deadline.expired():
                raise
            logger.error(f"Run for user {user_id} timed out after {timeout:g}s")
            result.record_error(f"Run timed out after {timeout:g}s")

    async def _protect(self, user_id: str, result: RunResult) -> None:
        result.state = RunState.FETCHING_TOKEN
        access_token = await self.token_provider.get_access_token(user_id)
        calendar = self.calendar_factory(access_token)

        result.state = RunState.FETCHING_EVENTS
        now = self.now()
        horizon = timedelta(hours=self.config.horizon_hours)
        time_max = (now.astimezone(timezone.utc) + horizon).astimezone(self.tz)
        items = await calendar.list_events(
            self.config.calendar_id,
            now,
            time_max,
            max_results=self.config.max_events,
        )

        window = normalize_events(
            items,
            time_min=now,
            time_max=time_max,
            tz=self.tz,
            max_events=self.config.max_events,
        )
        if window.is_empty:
            logger.info(f"No timed events found in the next {self.config.horizon_hours} hours")
        else:
            logger.info(f"Found {len(window)} events to analyze")

        result.state = RunState.EVALUATING_RULES
        for detector in self.detectors:
            action = detector.evaluate(window, now)
            if action is None:
                continue

            try:
                await self.executor.execute(action, calendar, result)
            except InsertError as e:
                if self.failure_policy is not FailurePolicy.SKIP_RULE:
                    raise
                logger.warning(f"Rule {detector.name} failed to insert, continuing: {e}")
                result.record_error(str(e), fatal=False)

        result.state = RunState.DONE

    # =========================================================================
    # All users
    # =========================================================================

    async def run_for_all_users(self, trigger: str = "manual") -> AggregateResult:
        """
        Protect every connected user.

        Users are processed sequentially unless max_concurrent_users > 1, in
        which case a bounded pool runs them; results keep user-store order.
        """
        user_ids = self.user_store.load()
        limit = self.config.max_concurrent_users

        if limit <= 1:
            results = [await self.run_for_user(user_id, trigger) for user_id in user_ids]
        else:
            semaphore = asyncio.Semaphore(limit)

            async def bounded(user_id: str) -> RunResult:
                async with semaphore:
                    return await self.run_for_user(user_id, trigger)

            results = list(await asyncio.gather(*(bounded(u) for u in user_ids)))

        aggregate = AggregateResult(results=results)
        logger.info(
            f"Check complete. Took {aggregate.total_actions} protective actions.",
            users=len(results),
            failed=sum(1 for r in results if r.failed),
            trigger=trigger,
        )
        return aggregate
