"""Logging setup for processes embedding the engine."""

import logging

from app.config import get_settings

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "picows")


def configure_logging(level: int | None = None) -> None:
    """
    Configure root logging and reduce noise from third-party libraries.

    Args:
        level: Root level; defaults to DEBUG when settings.debug is set,
            INFO otherwise
    """
    if level is None:
        level = logging.DEBUG if get_settings().debug else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
