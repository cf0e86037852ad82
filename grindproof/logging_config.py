"""
Structured logging configuration using structlog wrapping stdlib.

Modules keep logging through ``logging.getLogger(__name__)``; this module
routes those records through structlog so output is JSON in production
and readable console lines in development.

Usage:
    from grindproof.logging_config import setup_logging
    setup_logging()
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

from grindproof.config import get_section


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Environment variables win over the ``logging`` config section."""
    settings = get_section("logging")
    if level is None:
        level = os.environ.get("GRINDPROOF_LOG_LEVEL") or settings.get("level", "INFO")

    if json_output is None:
        log_format = os.environ.get("GRINDPROOF_LOG_FORMAT") or settings.get("format", "console")
        json_output = log_format.lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain lets plain stdlib records carry the same fields
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def bind_request_context(**values: str) -> None:
    """Attach values (user id, request path) to every log line of this request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


__all__ = ["bind_request_context", "setup_logging"]
