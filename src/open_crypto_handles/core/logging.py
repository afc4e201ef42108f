"""Structured logging for open-crypto-handles.

Events are emitted through the standard ``logging`` module under the
``open_crypto_handles`` logger, with their key/value pairs passed as
``extra`` record attributes. Until :func:`configure_logging` is called the
library installs no handler and records propagate to whatever the host
application configured.

Example:
    >>> from open_crypto_handles.core.logging import configure_logging, get_logger
    >>> configure_logging(log_format="json", log_level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.debug("handle.destroyed", pointer="0x55d0c2a0")
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.typing import Processor

from .config import get_config

PACKAGE_LOGGER = "open_crypto_handles"

# Per-logger chain, so the host's global structlog configuration is untouched
_EMIT_PROCESSORS: list[Processor] = [
    structlog.stdlib.filter_by_level,
    structlog.contextvars.merge_contextvars,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    structlog.stdlib.render_to_log_kwargs,
]


def _get_shared_processors() -> list[Processor]:
    """Get processors applied to every record before rendering."""
    return [
        structlog.stdlib.ExtraAdder(),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    log_format: Optional[str] = None,
    log_level: Optional[str] = None,
) -> None:
    """Install a stderr handler rendering this library's events.

    Replaces any handler previously installed on the ``open_crypto_handles``
    logger and stops propagation to the root logger. Applications that
    handle logging themselves do not need to call this.

    Args:
        log_format: "json" or "console" (default: from configuration)
        log_level: Minimum log level (default: from configuration)
    """
    config = get_config()
    log_format = log_format or config.log_format
    log_level = (log_level or config.log_level).upper()

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_get_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, log_level))
    package_logger.propagate = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger. Does not configure any handler.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Bound structlog logger
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_EMIT_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    )
