"""Logging configuration for the relay."""

import logging
import os
import sys

LOGGER_NAME = "voicerelay"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Set up the relay logger with a stdout handler.

    The level comes from ``level``, then VOICERELAY_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.getenv("VOICERELAY_LOG_LEVEL") or "INFO").upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Propagate to the root logger so pytest's caplog sees records
    logger.propagate = True

    return logger
