"""Protection engine: normalize a calendar window, detect burnout-risk patterns, insert protective events.

Components:
    models.py: CalendarEvent, NormalizedWindow, ProtectiveAction, RunResult
    normalizer.py: Raw calendar items -> NormalizedWindow
    detectors.py: One stateless strategy per rule
    executor.py: Inserts proposed actions and records the outcome
    orchestrator.py: Per-user runs and the all-users loop

Usage:
    from burnout_guard.protection import ProtectionOrchestrator

    orchestrator = ProtectionOrchestrator(token_provider, calendar_factory, user_store)
    result = await orchestrator.run_for_user("U123")
"""

from burnout_guard.protection.detectors import (
    Detector,
    FocusGuardDetector,
    HardStopDetector,
    LostLunchDetector,
    MeetingMarathonDetector,
    default_detectors,
)
from burnout_guard.protection.errors import AuthError, FetchError, InsertError, ProtectionError
from burnout_guard.protection.executor import ActionExecutor
from burnout_guard.protection.models import (
    ActionKind,
    AggregateResult,
    CalendarEvent,
    NormalizedWindow,
    ProtectiveAction,
    RunResult,
    RunState,
)
from burnout_guard.protection.normalizer import normalize_events
from burnout_guard.protection.orchestrator import FailurePolicy, ProtectionOrchestrator

__all__ = [
    "ActionExecutor",
    "ActionKind",
    "AggregateResult",
    "AuthError",
    "CalendarEvent",
    "Detector",
    "FailurePolicy",
    "FetchError",
    "FocusGuardDetector",
    "HardStopDetector",
    "InsertError",
    "LostLunchDetector",
    "MeetingMarathonDetector",
    "NormalizedWindow",
    "ProtectionError",
    "ProtectionOrchestrator",
    "ProtectiveAction",
    "RunResult",
    "RunState",
    "default_detectors",
    "normalize_events",
]
