"""Tests for burnout_guard/protection/orchestrator.py"""

import asyncio
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from burnout_guard.config import BurnoutGuardConfig, ProtectionConfig
from burnout_guard.protection.errors import FetchError, InsertError
from burnout_guard.protection.models import RunState
from burnout_guard.protection.orchestrator import FailurePolicy, ProtectionOrchestrator
from burnout_guard.providers.google_calendar import GoogleCalendarStore
from burnout_guard.users.store import InMemoryUserStore
from tests.fakes import CalendarDirectory, FakeCalendarStore, FakeTokenProvider


@pytest.fixture
def build(now, tz):
    """Build an orchestrator around fakes with a fixed clock."""

    def _build(users=("u1",), stores=None, tokens=None, **config):
        directory = CalendarDirectory(stores)
        orchestrator = ProtectionOrchestrator(
            tokens or FakeTokenProvider(),
            directory,
            InMemoryUserStore(list(users)),
            config=ProtectionConfig(**config),
            clock=lambda: now,
            tz=tz,
        )
        return orchestrator, directory

    return _build


@pytest.fixture
def marathon_items(make_item):
    """Back-to-back meetings plus a lunch, so only the buffer rule triggers."""
    return [
        make_item("Meeting A", "09:00", "09:30"),
        make_item("Meeting B", "09:32", "10:00"),
        make_item("Meeting C", "10:01", "10:30"),
        make_item("Lunch", "12:00", "12:30"),
    ]


class TestRunForUser:
    @pytest.mark.asyncio
    async def test_empty_window_still_evaluates_rules(self, build):
        """Should add lunch on an empty calendar and nothing else."""
        orchestrator, directory = build()

        result = await orchestrator.run_for_user("u1")

        assert result.actions_taken == 1
        assert result.log == ["Added lunch break at 12:15 PM"]
        assert result.state is RunState.DONE
        assert len(directory.stores["u1"].inserted) == 1

    @pytest.mark.asyncio
    async def test_fetches_horizon_from_now(self, build, now):
        """Should fetch exactly now to now+36h with the configured cap."""
        orchestrator, directory = build()

        await orchestrator.run_for_user("u1")

        call = directory.stores["u1"].list_calls[0]
        assert call["calendar_id"] == "primary"
        assert call["time_min"] == now
        assert call["time_max"] == now + timedelta(hours=36)
        assert call["max_results"] == 100
        assert directory.tokens == ["token-u1"]

    @pytest.mark.asyncio
    async def test_rules_run_in_fixed_order(self, build, make_item, at):
        """Should insert buffer, lunch, recharge then hard stop."""
        items = [
            make_item("Meeting A", "09:00", "09:30"),
            make_item("Meeting B", "09:30", "10:00"),
            make_item("Meeting C", "10:00", "10:30"),
            make_item("Deep work", "14:00", "16:00"),
            make_item("Project call", "18:00", "19:05"),
        ]
        orchestrator, directory = build(stores={"u1": FakeCalendarStore(items)})

        result = await orchestrator.run_for_user("u1")

        assert result.actions_taken == 4
        assert result.log == [
            "Added 15min buffer between Meeting B and Meeting C",
            "Added lunch break at 12:15 PM",
            "Added recharge break to long session: Deep work",
            "Added hard stop after late work",
        ]
        summaries = [p["summary"] for p in directory.stores["u1"].inserted]
        assert summaries == [
            "🛡️ Buffer Time (by Agent)",
            "🍽️ Lunch Break (by Agent)",
            "💧 Recharge Break (by Agent)",
            "🌙 Hard Stop: Wind Down (by Agent)",
        ]
        assert directory.stores["u1"].inserted[3]["start"] == {"dateTime": at("19:10").isoformat()}

    @pytest.mark.asyncio
    async def test_token_failure_aborts_with_one_error(self, build):
        """Should report zero actions and one Error line when the token is refused."""
        orchestrator, directory = build(tokens=FakeTokenProvider(failing={"u1"}))

        result = await orchestrator.run_for_user("u1")

        assert result.actions_taken == 0
        assert result.log == ["Error: invalid_grant for u1"]
        assert result.failed
        assert directory.tokens == []

    @pytest.mark.asyncio
    async def test_fetch_failure_aborts_with_one_error(self, build):
        """Should report zero actions and exactly one Error line when listing fails."""
        store = FakeCalendarStore(list_error=FetchError("Permission denied - insufficient scopes", status_code=403))
        orchestrator, _ = build(stores={"u1": store})

        result = await orchestrator.run_for_user("u1")

        assert result.actions_taken == 0
        assert [line for line in result.log if line.startswith("Error: ")] == [
            "Error: Permission denied - insufficient scopes"
        ]
        assert len(result.log) == 1
        assert store.inserted == []

    @pytest.mark.asyncio
    async def test_insert_failure_aborts_remaining_rules_by_default(self, build, marathon_items, make_item):
        """Should stop at the first failed insert under the abort_run policy."""
        items = [*marathon_items, make_item("Work", "17:00", "19:30")]
        store = FakeCalendarStore(items, insert_errors={0: InsertError("Rate limit exceeded", status_code=429)})
        orchestrator, _ = build(stores={"u1": store})

        result = await orchestrator.run_for_user("u1")

        assert orchestrator.failure_policy is FailurePolicy.ABORT_RUN
        assert result.actions_taken == 0
        assert result.log == ["Error: Rate limit exceeded"]
        assert result.failed
        assert store.inserted == []

    @pytest.mark.asyncio
    async def test_abort_keeps_inserts_made_before_failure(self, build, marathon_items, make_item):
        """Should keep counting actions that were inserted before the failure."""
        items = [*marathon_items, make_item("Work", "17:00", "19:30")]
        store = FakeCalendarStore(items, insert_errors={1: InsertError("Backend error", status_code=500)})
        orchestrator, _ = build(stores={"u1": store})

        result = await orchestrator.run_for_user("u1")

        assert result.actions_taken == 1
        assert result.log == [
            "Added 15min buffer between Meeting B and Meeting C",
            "Error: Backend error",
        ]

    @pytest.mark.asyncio
    async def test_skip_rule_policy_continues(self, build, marathon_items, make_item):
        """Should log the failed rule and still run the rest under skip_rule."""
        items = [*marathon_items, make_item("Work", "17:00", "19:30")]
        store = FakeCalendarStore(items, insert_errors={0: InsertError("Rate limit exceeded", status_code=429)})
        orchestrator, _ = build(stores={"u1": store}, failure_policy="skip_rule")

        result = await orchestrator.run_for_user("u1")

        assert result.actions_taken == 1
        assert result.log == ["Error: Rate limit exceeded", "Added hard stop after late work"]
        assert result.state is RunState.DONE

    @pytest.mark.asyncio
    async def test_skip_rule_does_not_swallow_fetch_errors(self, build):
        """Should still abort on fetch failures under skip_rule."""
        store = FakeCalendarStore(list_error=FetchError("Calendar not found", status_code=404))
        orchestrator, _ = build(stores={"u1": store}, failure_policy="skip_rule")

        result = await orchestrator.run_for_user("u1")

        assert result.log == ["Error: Calendar not found"]
        assert result.failed

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, build):
        """Should record unexpected exceptions as an Error line instead of raising."""
        store = FakeCalendarStore(list_error=KeyError("items"))
        orchestrator, _ = build(stores={"u1": store})

        result = await orchestrator.run_for_user("u1")

        assert result.failed
        assert len(result.log) == 1
        assert result.log[0].startswith("Error: ")

    @pytest.mark.asyncio
    async def test_run_timeout(self, build):
        """Should fail a run that exceeds run_timeout_seconds."""
        store = FakeCalendarStore(delay=1.0)
        orchestrator, _ = build(stores={"u1": store}, run_timeout_seconds=0.05)

        result = await orchestrator.run_for_user("u1")

        assert result.failed
        assert result.log == ["Error: Run timed out after 0.05s"]

    @pytest.mark.asyncio
    async def test_collaborator_timeout_without_run_timeout(self, build):
        """Should record a store's own TimeoutError as an ordinary run error."""
        store = FakeCalendarStore(list_error=TimeoutError("upstream timed out"))
        orchestrator, _ = build(stores={"u1": store})

        result = await orchestrator.run_for_user("u1")

        assert result.failed
        assert result.log == ["Error: upstream timed out"]

    @pytest.mark.asyncio
    async def test_collaborator_timeout_is_not_a_run_timeout(self, build):
        """Should keep the store's message when the run deadline has not passed."""
        store = FakeCalendarStore(list_error=TimeoutError("upstream timed out"))
        orchestrator, _ = build(stores={"u1": store}, run_timeout_seconds=5)

        result = await orchestrator.run_for_user("u1")

        assert result.log == ["Error: upstream timed out"]

    @pytest.mark.asyncio
    async def test_bare_timeout_error_message(self, build):
        store = FakeCalendarStore(list_error=TimeoutError())
        orchestrator, _ = build(stores={"u1": store})

        result = await orchestrator.run_for_user("u1")

        assert result.log == ["Error: TimeoutError"]

    @pytest.mark.asyncio
    async def test_configured_calendar_id(self, build):
        """Should list and insert on the configured calendar."""
        orchestrator, directory = build(calendar_id="team@example.com")

        await orchestrator.run_for_user("u1")

        assert directory.stores["u1"].list_calls[0]["calendar_id"] == "team@example.com"
        assert orchestrator.executor.calendar_id == "team@example.com"


class TestRunForAllUsers:
    @pytest.mark.asyncio
    async def test_failed_user_does_not_stop_loop(self, build):
        """Should continue to the next user after a fetch failure."""
        stores = {
            "u1": FakeCalendarStore(list_error=FetchError("Request failed: timeout")),
            "u2": FakeCalendarStore(),
        }
        orchestrator, _ = build(users=("u1", "u2"), stores=stores)

        aggregate = await orchestrator.run_for_all_users()

        first, second = aggregate.results
        assert first.user_id == "u1"
        assert first.actions_taken == 0
        assert first.log == ["Error: Request failed: timeout"]
        assert second.user_id == "u2"
        assert second.actions_taken == 1
        assert aggregate.total_actions == 1

    @pytest.mark.asyncio
    async def test_collaborator_timeout_does_not_stop_loop(self, build):
        """Should move on to the next user after a store raises TimeoutError."""
        stores = {
            "u1": FakeCalendarStore(list_error=TimeoutError("upstream timed out")),
            "u2": FakeCalendarStore(),
        }
        orchestrator, _ = build(users=("u1", "u2"), stores=stores)

        aggregate = await orchestrator.run_for_all_users()

        first, second = aggregate.results
        assert first.log == ["Error: upstream timed out"]
        assert second.actions_taken == 1

    @pytest.mark.asyncio
    async def test_no_users(self, build):
        """Should return an empty aggregate for no connected users."""
        orchestrator, _ = build(users=())

        aggregate = await orchestrator.run_for_all_users()

        assert aggregate.results == []
        assert aggregate.total_actions == 0
        assert aggregate.summary_lines() == []

    @pytest.mark.asyncio
    async def test_sequential_by_default(self, build):
        """Should finish one user's token call before starting the next."""
        tokens = FakeTokenProvider(delay=0.01)
        orchestrator, _ = build(users=("u1", "u2"), tokens=tokens)

        await orchestrator.run_for_all_users()

        assert tokens.calls == [("start", "u1"), ("end", "u1"), ("start", "u2"), ("end", "u2")]

    @pytest.mark.asyncio
    async def test_bounded_pool_keeps_user_order(self, build):
        """Should overlap users when max_concurrent_users > 1 and keep result order."""
        tokens = FakeTokenProvider(delay=0.02)
        orchestrator, _ = build(users=("u1", "u2", "u3"), tokens=tokens, max_concurrent_users=2)

        aggregate = await orchestrator.run_for_all_users()

        assert [r.user_id for r in aggregate.results] == ["u1", "u2", "u3"]
        assert tokens.calls[:2] == [("start", "u1"), ("start", "u2")]
        assert ("start", "u3") not in tokens.calls[:3]


class TestPerUserLocks:
    def test_get_user_lock_returns_same(self, build):
        orchestrator, _ = build()
        assert orchestrator._get_user_lock("u1") is orchestrator._get_user_lock("u1")

    def test_different_users_get_different_locks(self, build):
        orchestrator, _ = build()
        assert orchestrator._get_user_lock("u1") is not orchestrator._get_user_lock("u2")

    @pytest.mark.asyncio
    async def test_same_user_runs_serialized(self, build):
        """Should never overlap two runs for the same user."""
        tokens = FakeTokenProvider(delay=0.02)
        orchestrator, _ = build(tokens=tokens)

        await asyncio.gather(orchestrator.run_for_user("u1"), orchestrator.run_for_user("u1"))

        assert tokens.calls == [("start", "u1"), ("end", "u1"), ("start", "u1"), ("end", "u1")]


class TestFromConfig:
    def test_wires_google_calendar_and_options(self, tz):
        """Should build Google stores and pass rule options through."""
        config = BurnoutGuardConfig.model_validate(
            {
                "protection": {
                    "failure_policy": "skip_rule",
                    "lunch": {"skip_after_window": True},
                    "hard_stop": {"skip_if_present": True},
                },
                "descope": {"request_timeout_seconds": 5},
            }
        )
        orchestrator = ProtectionOrchestrator.from_config(
            config, FakeTokenProvider(), InMemoryUserStore(), tz=tz
        )

        store = orchestrator.calendar_factory("abc")
        assert isinstance(store, GoogleCalendarStore)
        assert store.access_token == "abc"
        assert store.timeout.total == 5
        assert orchestrator.failure_policy is FailurePolicy.SKIP_RULE
        assert orchestrator.detectors[1].skip_after_window is True
        assert orchestrator.detectors[3].skip_if_present is True


class TestDaylightSaving:
    @pytest.fixture
    def new_york(self):
        return ZoneInfo("America/New_York")

    @pytest.mark.asyncio
    async def test_horizon_is_elapsed_time_across_spring_forward(self, new_york):
        """Should fetch 36 real hours when the clocks go forward inside the window."""
        directory = CalendarDirectory()
        orchestrator = ProtectionOrchestrator(
            FakeTokenProvider(),
            directory,
            InMemoryUserStore(["u1"]),
            clock=lambda: datetime(2025, 3, 8, 17, 0, tzinfo=timezone.utc),
            tz=new_york,
        )

        await orchestrator.run_for_user("u1")

        call = directory.stores["u1"].list_calls[0]
        elapsed = call["time_max"].astimezone(timezone.utc) - call["time_min"].astimezone(timezone.utc)
        assert elapsed == timedelta(hours=36)
        assert call["time_max"] == datetime(2025, 3, 10, 5, 0, tzinfo=timezone.utc)
        assert call["time_max"].utcoffset() == timedelta(hours=-4)

    @pytest.mark.asyncio
    async def test_horizon_is_elapsed_time_across_fall_back(self, new_york):
        directory = CalendarDirectory()
        orchestrator = ProtectionOrchestrator(
            FakeTokenProvider(),
            directory,
            InMemoryUserStore(["u1"]),
            clock=lambda: datetime(2025, 11, 1, 16, 0, tzinfo=timezone.utc),
            tz=new_york,
        )

        await orchestrator.run_for_user("u1")

        call = directory.stores["u1"].list_calls[0]
        assert call["time_max"] == datetime(2025, 11, 3, 4, 0, tzinfo=timezone.utc)
        assert call["time_max"].utcoffset() == timedelta(hours=-5)
