"""Burnout Guard Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - protection/: Normalizer, detectors, executor, orchestrator
  - providers/: Google Calendar store and Descope client
  - users/: Connected user store
  - automation/: Scheduler
  - config/: YAML and environment configuration
- integration/: FastAPI routes end to end

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/protection/

    # Skip the HTTP tests
    pytest -m "not integration"
"""
