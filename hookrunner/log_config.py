"""Centralized structured logging configuration using structlog.

This module configures structlog for the hook runner. Log lines are written to
stderr because stdout carries the JSON run summary produced by the CLI, and
validator processes may be chained behind it.

Example:
    >>> from hookrunner.log_config import configure_logging, get_logger
    >>> configure_logging(level="INFO")
    >>> logger = get_logger(__name__)
    >>> logger.info("tier_execution_started", tier="critical", task_count=2)
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog for the hook runner.

    Sets up structlog with processors for timestamps, log levels, call-site
    information and either JSON or console rendering, bridged onto the
    standard library logging module.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, use JSONRenderer; if False, use ConsoleRenderer

    Raises:
        ValueError: If an invalid log level is provided
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        msg = f"Invalid log level: {level}"
        raise ValueError(msg)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )
    # basicConfig is a no-op once handlers exist; a later call still moves the level
    logging.getLogger().setLevel(numeric_level)

    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.contextvars.merge_contextvars,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        A structlog BoundLogger instance
    """
    return structlog.get_logger(name)


def bind_run_id(run_id: str) -> None:
    """Bind a run ID so every log line of one engine run can be correlated.

    Args:
        run_id: Unique identifier of the engine run
    """
    structlog.contextvars.bind_contextvars(run_id=run_id)


def unbind_run_id() -> None:
    """Remove the run ID from the logging context."""
    structlog.contextvars.unbind_contextvars("run_id")


def bind_context(**kwargs: Any) -> None:
    """Bind arbitrary context variables to the logging context.

    Args:
        **kwargs: Key-value pairs to add to the logging context

    Example:
        >>> bind_context(event_type="PreToolUse")
        >>> logger.info("engine_run_started")  # Will include event_type
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific context variables from the logging context.

    Args:
        *keys: Names of context variables to remove
    """
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all context variables from the logging context."""
    structlog.contextvars.clear_contextvars()


def log_progress(
    logger: structlog.stdlib.BoundLogger,
    verbose: bool,
    event: str,
    **kwargs: Any,
) -> None:
    """Log a progress event at INFO when verbose, DEBUG otherwise.

    Args:
        logger: Logger to emit on
        verbose: Whether the caller asked for verbose progress output
        event: Event name
        **kwargs: Event fields
    """
    if verbose:
        logger.info(event, **kwargs)
    else:
        logger.debug(event, **kwargs)
