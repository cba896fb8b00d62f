"""
Log setup for shellcore.

The pipeline and the CLI emit structlog events (``ring_failed``,
``pipeline_step_complete``). The geometry modules log through plain
``logging.getLogger(__name__)``; once ``configure_logging`` has run both
kinds of record leave through the same renderer, console or JSON.

Usage::

    from shellcore.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG")
    logger = get_logger(__name__)
    logger.info("layer_done", layer=12, rings=3)
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any, Optional

import structlog

_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Route structlog events and stdlib records to stderr (and ``log_file``).

    Args:
        level: Root level name; unknown names fall back to WARNING.
        json_output: One JSON object per line instead of console rendering.
        log_file: Extra destination for the same lines.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.WARNING),
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain gives geometry-module records the same keys
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )
    for handler in handlers:
        handler.setFormatter(formatter)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structlog logger named after the calling module."""
    return structlog.get_logger(name)


def run_context(**values: Any) -> AbstractContextManager:
    """Bind ``values`` to every structlog event emitted inside the block."""
    return structlog.contextvars.bound_contextvars(**values)
