"""
Centralized logging configuration for ShuttleBar.

The supervisor, the menu bar app and the CLI all log through the root logger
configured here: a debug-level file in ~/Library/Logs and a console handler.
"""

import logging
import sys
from typing import Optional

from . import config


class ShuttleBarLogger:
    """Centralized logger configuration for ShuttleBar."""

    _initialized = False

    @classmethod
    def setup(cls, debug: bool = False, force_reinit: bool = False) -> None:
        """
        Set up centralized logging for the entire application.

        Args:
            debug: If True, the console shows DEBUG messages too
            force_reinit: If True, reinitialize even if already set up
        """
        if cls._initialized and not force_reinit:
            return

        root_logger = logging.getLogger()
        if root_logger.hasHandlers():
            root_logger.handlers.clear()
        root_logger.setLevel(logging.DEBUG)

        formatter = logging.Formatter(config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT)

        try:
            config.LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(config.LOG_FILE)
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not set up file logging: {e}", file=sys.stderr)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        root_logger.addHandler(console_handler)

        cls._initialized = True
        logging.getLogger(__name__).debug(
            f"ShuttleBar logging initialized (debug={'on' if debug else 'off'})"
        )

    @classmethod
    def get_logger(cls, name: Optional[str] = None) -> logging.Logger:
        """Get a logger instance, ensuring ShuttleBar logging is initialized."""
        if not cls._initialized:
            cls.setup()
        return logging.getLogger(name)


def setup_logging(debug: bool = False, force_reinit: bool = False) -> None:
    """Set up centralized logging. Wrapper for ShuttleBarLogger.setup()."""
    ShuttleBarLogger.setup(debug=debug, force_reinit=force_reinit)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance. Wrapper for ShuttleBarLogger.get_logger()."""
    return ShuttleBarLogger.get_logger(name)
