"""Logging setup shared by the CLI and scripts."""
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "client_ledger"


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> logging.Logger:
    """
    Route the package's log records through rich.

    Safe to call more than once; existing handlers are replaced.

    Args:
        level: Level name such as 'INFO' or 'DEBUG'
        console: Console to log to, defaults to stderr

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
