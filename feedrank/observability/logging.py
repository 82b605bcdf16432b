"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for feed ranking.

    Sets up structlog with timestamps, log levels and context variables so
    that every event emitted during a ranking pass carries its pass id.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to render JSON lines (default: True).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO through the standard library
    logging.basicConfig(format="%(message)s", stream=output, level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def bind_run_context(pass_id: str, user_id: str | None = None) -> None:
    """Bind ranking pass context to all subsequent log messages.

    Args:
        pass_id: Unique ranking pass identifier.
        user_id: Optional id of the user the feed is ranked for.
    """
    structlog.contextvars.bind_contextvars(pass_id=pass_id)
    if user_id is not None:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_run_context() -> None:
    """Clear ranking pass context from log messages."""
    structlog.contextvars.unbind_contextvars("pass_id", "user_id")
