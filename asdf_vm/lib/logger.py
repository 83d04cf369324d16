"""
Logging setup for the asdf command line.

Diagnostics go to stderr; stdout is reserved for command and callback output.
"""

import logging
import sys
from typing import Optional, TextIO

from asdf_vm.config import Settings, get_settings


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    settings: Optional[Settings] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Set up logging configuration."""
    settings = settings or get_settings()

    log_level = getattr(logging, (level or settings.log_level).upper(), logging.WARNING)
    log_format = format_string or settings.log_format

    # Root logger configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)
