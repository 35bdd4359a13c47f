"""Log output for the chatctx entry points.

Library modules only call ``logging.getLogger(__name__)``.  The CLI and the
MCP server call :func:`configure_logging` once, which renders those records
with structlog on stderr: colourised key/value lines for a person at a
terminal, JSON lines when ``json_output`` is set.
"""

from __future__ import annotations

import logging
import sys

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "openai", "chromadb")


def configure_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """Send stdlib log records at *level* and above through structlog."""
    level = level.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level {level!r}")

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
