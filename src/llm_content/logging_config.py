"""
Logging setup for the llm_content package logger.

Console output always goes to stderr, so the CLI can write Markdown and
XML to stdout. On a terminal the console handler is rich's RichHandler;
otherwise (pipes, cron, tests) it is a plain StreamHandler with a
timestamped format.
"""

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .models.config import LlmContentConfig

PACKAGE_LOGGER = "llm_content"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _console_handler(interactive: bool, format_string: str) -> logging.Handler:
    if interactive:
        return RichHandler(console=Console(stderr=True), show_path=False, markup=False)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(format_string))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    force: bool = False,
    interactive: Optional[bool] = None,
) -> logging.Logger:
    """
    Set up logging configuration for llm_content.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives the same records
        format_string: Format for the plain console handler and the log file
        force: If True, reconfigure even if handlers exist
        interactive: Use rich console output (detected from stderr if None)

    Returns:
        Configured logger instance
    """
    format_string = format_string or LOG_FORMAT
    if interactive is None:
        interactive = sys.stderr.isatty()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)

    if force or not logger.handlers:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

        handlers = [_console_handler(interactive, format_string)]
        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(format_string))
            handlers.append(file_handler)

        for handler in handlers:
            handler.setLevel(numeric_level)
            logger.addHandler(handler)

    # Records stop at the package logger
    logger.propagate = False

    return logger


def configure_logging(config: LlmContentConfig, force: bool = False) -> logging.Logger:
    """Apply the logging settings of a loaded configuration."""
    return setup_logging(
        level=config.log_level,
        log_file=str(config.log_file) if config.log_file else None,
        force=force,
    )
