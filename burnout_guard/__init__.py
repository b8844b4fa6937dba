"""Burnout Guard - Calendar protection against overwork

Philosophy:
    A calendar that fills itself with back-to-back meetings, skipped lunches
    and late evenings is an early burnout signal. Burnout Guard watches the
    next 36 hours of a connected calendar and quietly inserts protective
    events before the pattern hardens.

Rules (evaluated in this order, each inserts at most one event per run):
    1. Meeting Marathon Defense: buffer after three back-to-back meetings
    2. Lost Lunch Defense: lunch break when none is scheduled
    3. Focus Guard: recharge break in the middle of long focus sessions
    4. Hard Stop: wind-down block after late work

Components:
    protection/: Normalizer, detectors, executor and orchestrator
    providers/: Google Calendar store and Descope token provider
    users/: Connected user registry
    automation/: Periodic and on-demand run scheduler
    server/: FastAPI OAuth callback and manual trigger routes
    config.py: Pydantic models for args/burnout_guard.yaml
"""

from pathlib import Path


# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
DATA_DIR = PROJECT_ROOT / "data"
CONFIG_PATH = ARGS_DIR / "burnout_guard.yaml"

__version__ = "0.1.0"

__all__ = [
    "PROJECT_ROOT",
    "ARGS_DIR",
    "DATA_DIR",
    "CONFIG_PATH",
    "__version__",
]
