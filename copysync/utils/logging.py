"""Structured logging setup for CopySync.

Uses structlog for JSON-structured logging with cycle IDs, account
identifiers, and timestamps in every log entry.
"""

import logging

import structlog


def configure_logging(json_output: bool = True, level: str = "INFO") -> None:
    """Configure structlog for the CopySync process.

    Args:
        json_output: If True (default), render logs as JSON.
                     If False, use console-friendly output for development.
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    level_num = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, account: str | None = None) -> structlog.BoundLogger:
    """Get a logger bound with a component name and optional account.

    Args:
        component: Name of the component requesting the logger.
        account: Optional account identifier the component works on.

    Returns:
        A structlog BoundLogger with component and account bound.
    """
    logger = structlog.get_logger()
    logger = logger.bind(component=component)
    if account:
        logger = logger.bind(account=account)
    return logger
