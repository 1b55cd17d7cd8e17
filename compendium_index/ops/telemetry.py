"""
Logging infrastructure for index builds and queries.

Importing the package only routes structlog through stdlib logging; the
root logger and its handlers belong to the host. Entry points that own the
process (the CLI) call :func:`configure_logging` to install a handler.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

from compendium_index.config.settings import LoggingCfg


def _processors(renderer: Any) -> list:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


# Route through stdlib logging unless the host configured structlog itself
if not structlog.is_configured():
    structlog.configure(
        processors=_processors(structlog.processors.JSONRenderer()),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def configure_logging(cfg: Optional[LoggingCfg] = None) -> None:
    """
    Install a stderr handler on the root logger and set the renderer.

    Meant for entry points that own the process; library callers keep
    their own logging setup.

    Args:
        cfg: Logging configuration (defaults to JSON at INFO)
    """
    cfg = cfg or LoggingCfg()
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if cfg.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=_processors(renderer),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


@contextmanager
def timed(logger: Any, event: str, **extra: Any) -> Iterator[dict]:
    """
    Log ``event`` with its duration in milliseconds when the block exits.

    The yielded dict can be filled with extra fields inside the block.

    Example:
        >>> with timed(logger, "index_loaded") as fields:
        ...     fields["profiles"] = 42
    """
    fields: dict = dict(extra)
    start = time.perf_counter()
    try:
        yield fields
    finally:
        fields["duration_ms"] = round((time.perf_counter() - start) * 1000, 2)
        logger.info(event, **fields)
