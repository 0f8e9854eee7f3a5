"""Structured logging foundation for supercore.

JSON output in production, colored console in development, both via
structlog. An audit logger records every prediction and resolution so a
cycle can be reconstructed from the log stream alone.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, cast

import structlog


def _configure_structlog() -> None:
    """Configure structlog from SUPERCORE_ENV / SUPERCORE_LOG_LEVEL."""
    env = os.environ.get("SUPERCORE_ENV", "development")
    log_level_name = os.environ.get("SUPERCORE_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(log_level_name)
    if not isinstance(level, int):
        level = logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if env == "production":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    _LOG_LEVELS["current"] = log_level_name


_LOG_LEVELS: dict[str, str] = {"current": "INFO"}
_CONFIGURED = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named logger instance.

    Args:
        name: Logger name (typically module __name__).

    Returns:
        Configured structlog BoundLogger.
    """
    global _CONFIGURED
    if not _CONFIGURED:
        _configure_structlog()
        _CONFIGURED = True

    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def get_audit_logger() -> structlog.stdlib.BoundLogger:
    """Get the audit trail logger for predictions and resolutions."""
    return get_logger("supercore.audit")


def log_cycle_event(
    action: str,
    period: str,
    **kwargs: Any,
) -> None:
    """Log a prediction-cycle event to the audit trail.

    Args:
        action: Event type (predict, resolve, fallback).
        period: Period identifier the event refers to.
        **kwargs: Additional context (decision, confidence, outcome, etc).
    """
    logger = get_audit_logger()
    logger.info(
        "cycle_event",
        event_type="audit",
        action=action,
        period=period,
        **kwargs,
    )
