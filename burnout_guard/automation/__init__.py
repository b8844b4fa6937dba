"""Automation: periodic and on-demand protection runs

Components:
    scheduler.py: Cron-driven loop over the orchestrator plus the run-now entry point

Dependencies:
    - croniter>=2.0.0 (cron expression parsing)
"""

from burnout_guard.automation.scheduler import (
    ProtectionScheduler,
    calculate_next_run,
    validate_cron_expression,
)

__all__ = [
    "ProtectionScheduler",
    "calculate_next_run",
    "validate_cron_expression",
]
