from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog


LOG_FORMATS = ("auto", "console", "json")


def resolve_log_format(requested: str, stream: TextIO | None = None) -> str:
    normalized = str(requested).strip().lower()
    if normalized not in LOG_FORMATS:
        raise ValueError(
            f"Invalid log format '{requested}'. Expected one of {sorted(LOG_FORMATS)}."
        )
    if normalized != "auto":
        return normalized

    out = stream if stream is not None else sys.stderr
    return "console" if getattr(out, "isatty", lambda: False)() else "json"


def _numeric_level(log_level: str | int) -> int:
    raw = str(log_level).strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level '{log_level}'.")
    return level


def configure_logging(
    log_level: str | int,
    log_format: str,
    stream: TextIO | None = None,
) -> str:
    """Route structlog through stdlib logging; returns the effective format."""
    effective_format = resolve_log_format(log_format, stream=stream)
    logging.basicConfig(
        level=_numeric_level(log_level),
        format="%(message)s",
        stream=stream if stream is not None else sys.stderr,
        force=True,
    )

    renderer: Any
    if effective_format == "json":
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return effective_format


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def log_event(logger: Any, level: str, event: str, **fields: Any) -> None:
    getattr(logger, level.lower())(event, **fields)
