"""Structured logging configuration for digest runs."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structlog for a matching or selection run.

    Log lines go to stderr by default so that commands printing a plan
    as JSON on stdout stay machine-readable.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Render JSON lines instead of coloured console output.
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

    # sqlite3 and click emit through stdlib logging; route it to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_run_context(run_id: str, command: str | None = None) -> None:
    """Bind run context to all subsequent log messages.

    Args:
        run_id: Unique run identifier.
        command: CLI command that started the run, if any.
    """
    if command is None:
        structlog.contextvars.bind_contextvars(run_id=run_id)
    else:
        structlog.contextvars.bind_contextvars(run_id=run_id, command=command)


def clear_run_context() -> None:
    """Clear run context from log messages."""
    structlog.contextvars.unbind_contextvars("run_id", "command")
