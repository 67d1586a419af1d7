from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    filename: str | Path | None = None,
    level: int | str = logging.INFO,
) -> structlog.BoundLogger:
    """Set up structured logging for the repo_archive module.

    Only the first call configures anything. Records carry the thread name,
    since archives are written on a background thread.

    Args:
        filename: Optional path to a log file. Logs are written to stderr when not given.
        level: Minimum level (name or number). Unknown names fall back to INFO.

    Returns:
        A structlog logger instance configured for the repo_archive module.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        threshold = _resolve_level(level)
        handlers: list[logging.Handler] = []
        if filename:
            handlers.append(logging.FileHandler(str(filename), encoding="utf-8"))
        else:
            handlers.append(logging.StreamHandler(sys.stderr))

        logging.basicConfig(
            level=threshold,
            handlers=handlers,
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.CallsiteParameterAdder(
                    [structlog.processors.CallsiteParameter.THREAD_NAME],
                ),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(threshold),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger("repo_archive")


# Lazy proxy: it picks up whatever `setup_logging` configures from `Settings`.
logger = structlog.get_logger("repo_archive")
