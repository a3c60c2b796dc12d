"""Structured logging configuration using structlog.

Logs go to stderr so that tools built on the client can keep stdout for
their own JSON or table output. Use get_logger() everywhere instead of print().
"""

import logging
import sys

import structlog


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog processors and output format.

    Args:
        json_output: If True, render JSON lines (production). Otherwise a
            colourless console format suited to terminals and CI logs.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # urllib3 logs every connection at DEBUG; route it through the same stream
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(numeric_level)
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).

    Returns:
        Configured structlog logger with module name context.
    """
    return structlog.get_logger(name)
