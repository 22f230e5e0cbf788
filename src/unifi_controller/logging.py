"""Log output for the controller client.

Logs always go to stderr, since the CLI writes events to stdout. Records
from libraries that use stdlib logging (tenacity retries, websockets) are
rendered by the same structlog renderer as the client's own events.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, List, Literal, Optional

import structlog


def configure_logging(
    log_format: Literal["json", "text"] = "json",
    log_level: str = "INFO",
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_format: "json" for one JSON object per line, "text" for console output.
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR).
        stream: Where to write, defaults to sys.stderr.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    stream = stream or sys.stderr

    shared_processors: List[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    renderer: structlog.typing.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
        tracebacks: List[structlog.typing.Processor] = [structlog.processors.dict_tracebacks]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())
        tracebacks = []

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            *tracebacks,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared_processors],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *tracebacks,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
