"""Structured logging setup for floe-fixtures.

Fixture modules log through ``structlog.get_logger(__name__)``; this module
only decides how those events are rendered.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from floe_fixtures.config import FixtureSettings


def configure_logging(
    settings: FixtureSettings | None = None,
    *,
    log_level: str | None = None,
    json_format: bool | None = None,
) -> None:
    """Configure structlog rendering for fixture events.

    Explicit keyword arguments win over ``settings``.

    Args:
        settings: Fixture settings providing log_level and json_logs.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, render JSON. If False, render for the console.

    Example:
        >>> configure_logging(FixtureSettings(log_level="DEBUG"))
        >>> configure_logging(log_level="WARNING", json_format=True)
    """
    level = log_level or (settings.log_level if settings else "INFO")
    as_json = json_format if json_format is not None else bool(settings and settings.json_logs)

    processors: list[Any] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if as_json else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
