"""
Process-wide log setup for the gatehouse CLI and engines.

Engines never configure logging themselves; each module does::

    import structlog
    logger = structlog.get_logger()

and emits snake_case events with identifying context, for example
``logger.info("validator_completed", execution_id=..., validator_id=...)``
or ``logger.warning("alert_dispatch_failed", alert_id=..., channel=...)``.
One validation run or one monitoring tick can then be followed by
filtering on ``execution_id`` / ``config_id``.

``configure_logging`` wires structlog onto the stdlib root logger through
a single ProcessorFormatter handler, so records from httpx, asyncio and
anything else using ``logging`` get the same timestamp/level treatment.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

HANDLER_NAME = "gatehouse"

# Libraries whose INFO chatter (one line per HTTP request) drowns out
# collector and channel events during a monitoring loop.
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def _pre_chain() -> list[structlog.types.Processor]:
    """Processors applied both to structlog events and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_output: bool, stream: TextIO) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def _install_handler(root: logging.Logger, handler: logging.Handler) -> None:
    # Reconfiguring replaces our handler rather than stacking a second one
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    handler.set_name(HANDLER_NAME)
    root.addHandler(handler)


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Route structlog and stdlib logging to *stream* (stderr by default).

    ``json_output`` selects one JSON object per line (for log shipping)
    over coloured console text.  An unknown *level* name falls back to INFO.
    Safe to call repeatedly: the last call wins.
    """
    out = stream if stream is not None else sys.stderr
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output, out),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    _install_handler(root, handler)
    root.setLevel(_resolve_level(level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
