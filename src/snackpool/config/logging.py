"""Route stdlib and structlog records through one stderr handler.

Library modules log with ``logging.getLogger(__name__)``; telemetry and
the audit plugin use structlog. Both end in the same
``ProcessorFormatter`` so a run produces one consistent stream: coloured
console lines on a terminal, or JSON lines with ``--log-json``.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool, stream: IO[str]) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Install the handler and set levels. Safe to call more than once.

    ``snackpool.*`` loggers emit DEBUG and up with *verbose*, WARNING and
    up otherwise. Third-party loggers stay at WARNING either way.
    """
    stream = stream or sys.stderr
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json, stream),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)
    logging.getLogger("snackpool").setLevel(logging.DEBUG if verbose else logging.WARNING)


def bind_log_context(**values: Any) -> None:
    """Attach *values* (pool name, acting user) to every later log line."""
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()
