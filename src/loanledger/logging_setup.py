"""Logging configuration for command-line use.

Library modules only create loggers; handlers are installed here, by the CLI.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "loanledger"


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Send loanledger log records to stderr through Rich.

    Safe to call repeatedly; an existing Rich handler is replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
