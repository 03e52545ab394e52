"""Logging configuration for the service and its background workers."""

import logging
import sys

from treasury.core.config import get_settings

_NOISY_LOGGERS = ("sqlalchemy.engine", "redis", "asyncio")


def setup_logging() -> None:
    """Configure process-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO. Driver and
    broker client loggers are capped at WARNING so relay polling does not
    flood the output. Output goes to stdout.
    """
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

