"""Structured logging configuration for scopebus.

Uses structlog for structured, context-rich logging with
support for both console and JSON output formats.
"""

from __future__ import annotations

import logging
import sys

import structlog

from scopebus.config import BusConfig

_configured = False


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    colors: bool = True,
    force: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON format
        colors: Whether to use colors in console output
        force: Replace existing root handlers; when False an application
            that already configured logging keeps its handlers and level
    """
    global _configured

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
        force=force,
    )

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def configure_from_config(config: BusConfig, force: bool = True) -> None:
    """Configure logging from a :class:`BusConfig`."""
    configure_logging(
        level=config.log_level,
        json_output=config.log_json,
        colors=not config.log_json,
        force=force,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Logging is configured from the environment on first use unless the
    application already called :func:`configure_logging`. That lazy setup
    leaves root handlers the application installed in place.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    if not _configured:
        configure_from_config(BusConfig.from_env(), force=False)
    return structlog.get_logger(name)
