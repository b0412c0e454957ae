"""structlog configuration for caco3.

Two output modes:
- Human (default): console renderer, colored when the stream is a TTY
- JSON (log_json=True): one JSON object per line

The library's own modules log through stdlib ``logging.getLogger(__name__)``
with %-style messages; nothing in caco3 emits structlog key/value events.
The ProcessorFormatter's ``foreign_pre_chain`` gives those stdlib records
the same level, logger name and timestamp as structlog events an
application emits, and both are rendered by one handler in one format.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

LOGGER_NAMESPACE = "caco3"


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: Enable DEBUG-level output for caco3. When False, only WARNING+.
        log_json: Use JSON renderer instead of console renderer.
        stream: Destination; defaults to ``sys.stderr`` at call time.
    """
    out = stream if stream is not None else sys.stderr
    level = logging.DEBUG if verbose else logging.WARNING

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)
