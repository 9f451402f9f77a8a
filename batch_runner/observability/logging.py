"""Structured logging configuration with structlog."""

from __future__ import annotations

import logging
import sys

import structlog


def observability_configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog and stdlib logging for one CLI process.

    Progress events go to stdout next to the CLI status lines.

    Args:
        log_level: Minimum level name (`DEBUG`, `INFO`, `WARNING`, `ERROR`).
        log_format: `console` for human-readable lines, `json` for one JSON object per line.

    Returns:
        None: Configures process-wide logging as side effect.

    Raises:
        ValueError: Raised when log level or format is unsupported.
    """

    normalized_level = log_level.strip().upper()
    level_number = logging.getLevelName(normalized_level)
    if not isinstance(level_number, int):
        raise ValueError(f"unsupported log_level={log_level}")
    if log_format not in ("console", "json"):
        raise ValueError(f"unsupported log_format={log_format}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level_number,
        force=True,
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
