from __future__ import annotations

import logging as py_logging
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from school_delay.config import LoggingConfig, app_config

_configured = False


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    global _configured
    if _configured:
        return

    config = config or app_config.logging
    level = getattr(py_logging, str(config.level).upper(), py_logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if config.json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    py_logging.basicConfig(level=level)
    _configured = True


def get_logger(name: str = __name__):
    if not _configured:
        setup_logging()
    return structlog.get_logger(name)


@contextmanager
def bound_context(**values: object) -> Iterator[None]:
    """Attach ``values`` (e.g. a run id) to every log line emitted inside the block."""
    tokens = structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
