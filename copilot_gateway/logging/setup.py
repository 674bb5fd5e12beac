"""Logging configuration for the gateway."""

import logging
import sys

LOGGER_NAME = "copilot-gateway"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Set up logging with proper handlers and formatters.

    Safe to call repeatedly; existing handlers are replaced.
    """
    numeric_level = logging.getLevelName(str(level).upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Propagate to root so pytest's caplog sees records
    logger.propagate = True

    return logger


logger = logging.getLogger(LOGGER_NAME)
