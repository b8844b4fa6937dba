"""
Structured logging configuration using structlog wrapping stdlib.

Console output for local runs, JSON lines when BURNOUT_GUARD_LOG_FORMAT=json
(the periodic trigger only reports to this operational log).

Usage:
    from burnout_guard.logging_config import run_context, setup_logging
    setup_logging()

    with run_context(user_id="U123", trigger="schedule"):
        logger.info("Checking calendar")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    if level is None:
        level = os.environ.get("BURNOUT_GUARD_LOG_LEVEL", "INFO")

    if json_output is None:
        json_output = os.environ.get("BURNOUT_GUARD_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # Shared by structlog and foreign stdlib records
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    # JSON carries tracebacks as structured data
    if json_output:
        render_chain: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        render_chain = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *render_chain,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Quiet aiohttp access logs
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def run_context(**fields: Any) -> Iterator[None]:
    """Bind fields to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield


__all__ = ["get_logger", "run_context", "setup_logging"]
