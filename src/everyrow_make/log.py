"""Logging setup for the erm command."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

LOGGER_NAME = "everyrow_make"
LOG_FILE = "erm.log"


def setup_logging(
    config: LoggingConfig,
    logs_dir: Path | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Console output goes through Rich; file output is plain text in logs_dir.
    Calling this again replaces previously installed handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config.console_logging:
        handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    if config.file_logging and logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(logs_dir / LOG_FILE)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
