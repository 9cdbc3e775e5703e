# src/periscope/core/logging.py
"""Structured logging configuration for Periscope.

structlog and stdlib logging share one handler. Stdlib records are routed
through structlog's processor chain via ProcessorFormatter, so a host
runtime logging with logging.getLogger(__name__) renders the same way as
the collector.

The handler's stream is chosen by the caller. The CLI writes logs to
stderr so that report output on stdout stays machine readable.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Chatter at DEBUG that says nothing about message delivery
_NOISY_LOGGERS: tuple[str, ...] = (
    "asyncio",
    "concurrent.futures",
)

_SHARED_PROCESSORS: tuple[Any, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop ProcessorFormatter bookkeeping keys from the rendered record.

    ProcessorFormatter always adds both keys; a KeyError here means the
    integration broke.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _render_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [_remove_internal_fields, structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Safe to call repeatedly; each call replaces the root handler.

    Args:
        json_output: Emit JSON lines instead of console output.
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        stream: Where records are written. Defaults to stdout.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers bound at import time
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=_render_chain(json_output),
            foreign_pre_chain=list(_SHARED_PROCESSORS),
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the bound logger used by every periscope module."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
