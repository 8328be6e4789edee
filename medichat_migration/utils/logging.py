"""
Structured Logging Utilities for the Migration Engine

Configures structlog for structured logging of a migration run. Log events
go to stderr so that stdout carries only the operator-facing progress lines
and the final summary table.

Key Features:
- Structured JSON logging with Python structlog library
- Pretty console rendering for interactive runs (LOG_FORMAT=console)
- Run correlation through structlog context variables
"""

import logging
import sys
import uuid
from typing import Optional

import structlog


def configure_logging(level: str = "INFO", fmt: str = "json", stream=None) -> None:
    """
    Configure structlog for the migration run.

    Args:
        level: Minimum log level name
        fmt: 'json' for JSON lines, 'console' for human-readable output
        stream: Destination file object (defaults to stderr)
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if fmt == 'console':
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=False)
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def bind_run_context(run_id: Optional[str] = None) -> str:
    """
    Bind a run identifier to every subsequent log event.

    Returns:
        str: The bound run identifier
    """
    run_id = run_id or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run_id=run_id)
    return run_id


def get_logger(name: str):
    """Get a structlog logger tagged with the emitting component."""
    return structlog.get_logger(name, component=name)
