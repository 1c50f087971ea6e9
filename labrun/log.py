"""Structured logging with structlog."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_CONFIGURED = False


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    *,
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Configure stdlib logging + structlog once per process.

    Defaults come from `labrun.settings`. The CLI passes `stream=sys.stderr` so
    command output on stdout stays machine-readable.
    """

    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    from labrun.settings import get_settings

    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_format = (fmt or settings.log_format).lower()

    handler = logging.StreamHandler(stream or sys.stderr)
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer))

    _CONFIGURED = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
